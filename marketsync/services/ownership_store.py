"""Ownership Store — current owner of every tracked asset, plus read views.

Invariants:
    - apply_ownership is the only asset write path and is called only by the
      event synchronizer
    - apply_ownership goes through reduce_ownership: events at or before the
      stored position change nothing
    - Read results ordered by numeric token id
    - Listing join exposes only active, non-expired listings of the current owner

Design Decisions:
    - Token ids ordered in Python: stored as decimal text, so SQL ordering
      would be lexicographic
"""

import logging
from dataclasses import dataclass

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.core.domain_types import Address, AssetKey, LedgerPosition, normalize_address
from marketsync.core.ownership_rules import AssetState, reduce_ownership
from marketsync.models.asset import Asset
from marketsync.models.listing import Listing
from marketsync.models.owner import Owner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingSummary:
    seller: Address
    price: int
    deadline: int


@dataclass(frozen=True)
class AssetView:
    """Read model of an asset for the HTTP surface."""
    contract_address: Address
    token_id: int
    owner: Address
    metadata_uri: str | None = None
    listing: ListingSummary | None = None


@dataclass(frozen=True)
class OwnershipChange:
    asset: AssetKey
    previous_owner: Address | None
    new_owner: Address
    position: LedgerPosition


def _view(asset: Asset, owner_address: str, listing: Listing | None = None) -> AssetView:
    summary = None
    if listing is not None:
        summary = ListingSummary(
            seller=Address(listing.seller_address),
            price=int(listing.price),
            deadline=listing.deadline,
        )
    return AssetView(
        contract_address=Address(asset.contract_address),
        token_id=int(asset.token_id),
        owner=Address(owner_address),
        metadata_uri=asset.metadata_uri,
        listing=summary,
    )


class OwnershipStore:
    """Queries and the synchronizer's write path over owners/assets."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def owner_of(self, contract: str, token_id: int) -> Address | None:
        result = await self._db.execute(
            select(Owner.address)
            .join(Asset, Asset.owner_id == Owner.id)
            .where(
                Asset.contract_address == normalize_address(contract),
                Asset.token_id == str(token_id),
            ),
        )
        address = result.scalar_one_or_none()
        return Address(address) if address else None

    async def assets_owned_by(self, owner: str) -> list[AssetView]:
        """Empty list for an address never seen as a recipient."""
        result = await self._db.execute(
            select(Asset, Owner.address)
            .join(Owner, Asset.owner_id == Owner.id)
            .where(Owner.address == normalize_address(owner)),
        )
        views = [_view(asset, address) for asset, address in result.all()]
        return sorted(views, key=lambda v: v.token_id)

    def _listed_assets(self, now: int):
        return (
            select(Asset, Owner.address, Listing)
            .join(Owner, Asset.owner_id == Owner.id)
            .outerjoin(Listing, and_(
                Listing.contract_address == Asset.contract_address,
                Listing.token_id == Asset.token_id,
                Listing.seller_address == Owner.address,
                Listing.is_active.is_(True),
                Listing.deadline >= now,
            ))
        )

    async def all_assets(self, now: int) -> list[AssetView]:
        """Every asset with its owner's active, unexpired listing (if any)."""
        result = await self._db.execute(self._listed_assets(now))
        views = [_view(asset, address, listing) for asset, address, listing in result.all()]
        return sorted(views, key=lambda v: (v.token_id, v.contract_address))

    async def get_asset(self, contract: str, token_id: int, now: int) -> AssetView | None:
        result = await self._db.execute(
            self._listed_assets(now).where(
                Asset.contract_address == normalize_address(contract),
                Asset.token_id == str(token_id),
            ),
        )
        row = result.first()
        return _view(*row) if row else None

    async def upsert_owner(self, address: str) -> Owner:
        address = normalize_address(address)
        result = await self._db.execute(
            select(Owner).where(Owner.address == address),
        )
        owner = result.scalar_one_or_none()
        if owner is None:
            owner = Owner(address=address)
            self._db.add(owner)
            await self._db.flush()
        return owner

    async def _load_asset(self, contract: Address, token_id: int) -> Asset | None:
        result = await self._db.execute(
            select(Asset).where(
                Asset.contract_address == contract,
                Asset.token_id == str(token_id),
            ),
        )
        return result.scalar_one_or_none()

    async def apply_ownership(
        self,
        contract: str,
        token_id: int,
        new_owner: str,
        position: LedgerPosition,
    ) -> OwnershipChange | None:
        """Record new_owner as of position; None if already reflected."""
        contract = normalize_address(contract)
        new_owner = normalize_address(new_owner)
        asset = await self._load_asset(contract, token_id)
        current = None
        if asset is not None:
            current = AssetState(owner=Address(asset.owner.address), position=asset.position)

        next_state = reduce_ownership(current, new_owner, position)
        if next_state is None:
            logger.debug(
                f"Event at {position} already reflected for token {token_id}",
                extra={"token_id": str(token_id), "contract_address": contract},
            )
            return None

        owner = await self.upsert_owner(next_state.owner)
        if asset is None:
            asset = Asset(contract_address=contract, token_id=str(token_id))
            self._db.add(asset)
        asset.owner_id = owner.id
        asset.owner = owner
        asset.last_block_number = position.block_number
        asset.last_log_index = position.log_index
        await self._db.flush()

        return OwnershipChange(
            asset=AssetKey(contract, token_id),
            previous_owner=current.owner if current else None,
            new_owner=next_state.owner,
            position=position,
        )

    async def counts(self) -> dict[str, int]:
        """Row counts for diagnostics."""
        owners = await self._db.scalar(select(func.count()).select_from(Owner))
        assets = await self._db.scalar(select(func.count()).select_from(Asset))
        listings = await self._db.scalar(select(func.count()).select_from(Listing))
        active = await self._db.scalar(
            select(func.count()).select_from(Listing).where(Listing.is_active.is_(True)),
        )
        return {
            "owners": owners or 0,
            "assets": assets or 0,
            "listings": listings or 0,
            "active_listings": active or 0,
        }
