"""Redemption Schemas — buyer request and the authorization tuple."""

from pydantic import Field, field_validator

from marketsync.schemas.base import CamelModel, checksum


class RedemptionRequest(CamelModel):
    contract_address: str | None = None
    token_id: int = Field(ge=0)
    buyer_address: str
    seller_address: str | None = None

    @field_validator("contract_address", "buyer_address", "seller_address")
    @classmethod
    def checksum_addresses(cls, v: str | None) -> str | None:
        return checksum(v)


class RedemptionResponse(CamelModel):
    """Exactly what the buyer passes to the marketplace purchase call."""
    contract_address: str
    token_id: str
    seller_address: str
    price: str
    deadline: int
    nonce: int
    signature: str
    signer_address: str
