"""Asset Routes — ownership lookups, optionally joined with active listings.

Invariants:
    - Read-only: assets are written only by the synchronizer
    - Unknown owner → empty list, never 404
    - Listing fields appear only for an active, unexpired listing of the current owner
"""

import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.api.dependencies import get_clock
from marketsync.core.domain_types import Address, normalize_address
from marketsync.core.errors import InvalidAddressError, ResourceNotFoundError
from marketsync.infrastructure.database import get_db
from marketsync.schemas.asset import AssetResponse
from marketsync.services.ownership_store import AssetView, OwnershipStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/assets", tags=["assets"])


def parse_address(value: str) -> Address:
    try:
        return normalize_address(value)
    except ValueError:
        raise InvalidAddressError(value)


def to_response(view: AssetView) -> AssetResponse:
    listing = view.listing
    return AssetResponse(
        contract_address=view.contract_address,
        token_id=str(view.token_id),
        owner_address=view.owner,
        metadata_uri=view.metadata_uri,
        is_listed=listing is not None,
        price=str(listing.price) if listing else None,
        deadline=listing.deadline if listing else None,
        seller_address=listing.seller if listing else None,
    )


@router.get("", response_model=list[AssetResponse])
async def list_assets(
    owner: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], float] = Depends(get_clock),
):
    """All assets with listing data, or only those held by ?owner=."""
    store = OwnershipStore(db)
    if owner is not None:
        views = await store.assets_owned_by(parse_address(owner))
    else:
        views = await store.all_assets(int(clock()))
    return [to_response(v) for v in views]


@router.get("/{contract}/{token_id}", response_model=AssetResponse)
async def get_asset(
    contract: str,
    token_id: int,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], float] = Depends(get_clock),
):
    view = await OwnershipStore(db).get_asset(
        parse_address(contract), token_id, int(clock()),
    )
    if view is None:
        raise ResourceNotFoundError("Asset", f"{contract}#{token_id}")
    return to_response(view)
