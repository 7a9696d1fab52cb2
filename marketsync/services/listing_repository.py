"""Listing Repository — persistence of signed listings and their retirement.

Invariants:
    - replace() deletes any prior row for (asset, seller) before inserting, so
      a relist never resurrects an older authorization
    - find_active() returns the most recent active row, rows of prefer_seller
      first; expiry is the caller's call
    - Never commits
"""

import logging

from sqlalchemy import case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.core.domain_types import Address
from marketsync.models.listing import Listing

logger = logging.getLogger(__name__)


class ListingRepository:

    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_active(
        self,
        contract: str,
        token_id: int,
        seller: Address | None = None,
        prefer_seller: Address | None = None,
    ) -> Listing | None:
        query = select(Listing).where(
            Listing.contract_address == contract,
            Listing.token_id == str(token_id),
            Listing.is_active.is_(True),
        )
        if seller is not None:
            query = query.where(Listing.seller_address == seller)
        order = [Listing.created_at.desc(), Listing.id.desc()]
        if prefer_seller is not None:
            order.insert(0, case((Listing.seller_address == prefer_seller, 0), else_=1))
        query = query.order_by(*order).limit(1)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    async def replace(
        self,
        contract: Address,
        token_id: int,
        seller: Address,
        price: int,
        deadline: int,
        nonce: int,
        signature: str,
        signer_address: Address,
    ) -> Listing:
        """Upsert-replace the (asset, seller) listing with a fresh active row."""
        await self._db.execute(
            delete(Listing).where(
                Listing.contract_address == contract,
                Listing.token_id == str(token_id),
                Listing.seller_address == seller,
            ),
        )
        listing = Listing(
            contract_address=contract,
            token_id=str(token_id),
            seller_address=seller,
            price=str(price),
            deadline=deadline,
            nonce=nonce,
            signature=signature,
            signer_address=signer_address,
            is_active=True,
        )
        self._db.add(listing)
        await self._db.flush()
        return listing

    async def deactivate(self, listing: Listing) -> None:
        listing.is_active = False
        await self._db.flush()

    async def deactivate_not_owned_by(
        self, contract: Address, token_id: int, owner: Address,
    ) -> int:
        """Retire active listings of the asset whose seller is no longer its owner."""
        result = await self._db.execute(
            update(Listing)
            .where(
                Listing.contract_address == contract,
                Listing.token_id == str(token_id),
                Listing.seller_address != owner,
                Listing.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch"),
        )
        return result.rowcount or 0
