"""Listing Routes — submit a signed listing, browse the active one.

Invariants:
    - POST returns 201 only after every authorization check passed and the
      listing was committed
    - Each rejection keeps its own error code (NOT_OWNER, INVALID_SIGNATURE, ...)
    - GET never returns the signature
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from marketsync.api.dependencies import get_listing_engine, get_marketplace_config
from marketsync.api.routes.assets import parse_address
from marketsync.config import MarketplaceConfig
from marketsync.core.domain_types import Address, normalize_address
from marketsync.core.errors import ResourceNotFoundError
from marketsync.models.listing import Listing
from marketsync.schemas.listing import ListingCreate, ListingResponse
from marketsync.services.listing_engine import ListingEngine, ListingRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/listings", tags=["listings"])


def to_response(listing: Listing) -> ListingResponse:
    return ListingResponse(
        id=listing.id,
        contract_address=listing.contract_address,
        token_id=listing.token_id,
        seller_address=listing.seller_address,
        price=listing.price,
        deadline=listing.deadline,
        nonce=listing.nonce,
        signer_address=listing.signer_address,
        is_active=listing.is_active,
        created_at=listing.created_at,
    )


@router.post(
    "", response_model=ListingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_listing(
    body: ListingCreate,
    engine: ListingEngine = Depends(get_listing_engine),
    config: MarketplaceConfig = Depends(get_marketplace_config),
):
    """Validate a seller-signed authorization and store it as the active listing."""
    request = ListingRequest(
        contract_address=Address(
            body.contract_address or normalize_address(config.nft_contract),
        ),
        token_id=body.token_id,
        seller=Address(body.seller_address),
        price=body.price,
        deadline=body.deadline,
        nonce=body.nonce,
        signature=body.signature,
        signer_address=Address(body.signer_address) if body.signer_address else None,
    )
    listing = await engine.create_listing(request)
    return to_response(listing)


@router.get("", response_model=ListingResponse)
async def get_listing(
    token_id: int = Query(alias="tokenId", ge=0),
    contract: str | None = Query(None),
    seller: str | None = Query(None),
    engine: ListingEngine = Depends(get_listing_engine),
    config: MarketplaceConfig = Depends(get_marketplace_config),
):
    contract_address = parse_address(contract) if contract else config.nft_contract
    listing = await engine.get_active_listing(
        contract_address, token_id, parse_address(seller) if seller else None,
    )
    if listing is None:
        raise ResourceNotFoundError("Listing", f"{contract_address}#{token_id}")
    return to_response(listing)
