"""Listing Schemas — listing submission and listing views.

Invariants:
    - price > 0, tokenId/nonce >= 0; deadline range checked by the engine
      (it needs the clock)
    - signature is 0x-prefixed hex; length checked by the verifier
    - Listing views never expose the signature; only redemption does
"""

from datetime import datetime

from pydantic import Field, field_validator

from marketsync.schemas.base import CamelModel, checksum


class ListingCreate(CamelModel):
    """Seller-signed listing authorization."""
    contract_address: str | None = None
    token_id: int = Field(ge=0)
    seller_address: str
    price: int = Field(gt=0)
    deadline: int = Field(gt=0)
    nonce: int = Field(ge=0)
    signature: str = Field(pattern=r"^0x[0-9a-fA-F]+$")
    signer_address: str | None = None

    @field_validator("contract_address", "seller_address", "signer_address")
    @classmethod
    def checksum_addresses(cls, v: str | None) -> str | None:
        return checksum(v)


class ListingResponse(CamelModel):
    id: int
    contract_address: str
    token_id: str
    seller_address: str
    price: str
    deadline: int
    nonce: int
    signer_address: str
    is_active: bool
    created_at: datetime
