"""Asset Schemas — ownership views, optionally joined with the owner's listing."""

from marketsync.schemas.base import CamelModel


class AssetResponse(CamelModel):
    contract_address: str
    token_id: str
    owner_address: str
    metadata_uri: str | None = None
    is_listed: bool = False
    price: str | None = None
    deadline: int | None = None
    seller_address: str | None = None
