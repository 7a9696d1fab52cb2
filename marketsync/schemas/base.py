"""Shared schema base — camelCase aliases and address validation."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from marketsync.core.domain_types import normalize_address


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def checksum(value: str | None) -> str | None:
    """field_validator body: None passes through, anything else must be an address."""
    if value is None:
        return None
    return normalize_address(value)
