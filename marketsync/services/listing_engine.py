"""Listing Authorization Engine — accepts seller-signed resale listings.

Invariants:
    - Checks run in order: terms, ownership, signature, signer, live nonce;
      the first failure raises its own error and nothing is persisted
    - Ownership is judged by the store (synced view), nonces by the live ledger
    - Never mutates assets; only listings and the signer's Owner row

Design Decisions:
    - The typed data is rebuilt from request fields on the server: the client
      never supplies the struct that gets verified
    - The recovered address is stored as signer_address, so redemption can
      rebuild the same signer variant without extra columns
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.config import MarketplaceConfig
from marketsync.core.domain_types import Address, normalize_address, signer_for
from marketsync.core.errors import ErrorContext, MalformedAuthorizationError
from marketsync.core.listing_rules import (
    check_live_nonce, check_ownership, check_signer, validate_listing_terms,
)
from marketsync.core.redemption_rules import is_expired
from marketsync.core.repository_protocols import LedgerReader, SignatureVerifier
from marketsync.core.typed_data import build_listing_typed_data
from marketsync.models.listing import Listing
from marketsync.services.listing_repository import ListingRepository
from marketsync.services.ownership_store import OwnershipStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingRequest:
    contract_address: Address
    token_id: int
    seller: Address
    price: int
    deadline: int
    nonce: int
    signature: str
    signer_address: Address | None = None


class ListingEngine:
    """Validates and persists listing authorizations."""

    def __init__(
        self,
        db: AsyncSession,
        ledger: LedgerReader,
        verifier: SignatureVerifier,
        config: MarketplaceConfig,
        clock: Callable[[], float] = time.time,
    ):
        self._db = db
        self._ledger = ledger
        self._verifier = verifier
        self._config = config
        self._clock = clock
        self._store = OwnershipStore(db)
        self._listings = ListingRepository(db)
        self._marketplace = normalize_address(config.marketplace_contract)

    async def create_listing(self, request: ListingRequest) -> Listing:
        ctx = ErrorContext(
            contract_address=request.contract_address,
            token_id=request.token_id,
            seller_address=request.seller,
        )
        validate_listing_terms(
            request.price, request.deadline, request.nonce,
            int(self._clock()), ctx,
        )

        owner = await self._store.owner_of(request.contract_address, request.token_id)
        check_ownership(request.seller, owner, ctx)

        try:
            typed_data = build_listing_typed_data(
                self._config, request.seller, request.token_id,
                request.price, request.deadline, request.nonce,
            )
        except ValueError as e:
            raise MalformedAuthorizationError(str(e), context=ctx)
        recovered = self._verifier.recover(typed_data, request.signature)
        check_signer(recovered, signer_for(request.seller, request.signer_address), ctx)

        live_nonce = await self._ledger.nonce_of(self._marketplace, request.seller)
        check_live_nonce(request.nonce, live_nonce, ctx)

        await self._store.upsert_owner(recovered)
        listing = await self._listings.replace(
            contract=request.contract_address,
            token_id=request.token_id,
            seller=request.seller,
            price=request.price,
            deadline=request.deadline,
            nonce=request.nonce,
            signature=request.signature,
            signer_address=recovered,
        )
        await self._db.commit()
        logger.info(
            f"Listing stored for token {request.token_id} at {request.price} wei",
            extra={
                "token_id": str(request.token_id),
                "contract_address": request.contract_address,
                "seller_address": request.seller,
            },
        )
        return listing

    async def get_active_listing(
        self, contract: str, token_id: int, seller: str | None = None,
    ) -> Listing | None:
        """Active, unexpired listing without re-validation (browse only).

        Without a seller, the indexed owner's listing wins over older sellers.
        """
        contract = normalize_address(contract)
        seller = normalize_address(seller) if seller else None
        indexed_owner = None if seller else await self._store.owner_of(contract, token_id)
        listing = await self._listings.find_active(
            contract, token_id, seller, prefer_seller=indexed_owner,
        )
        if listing is None or is_expired(listing.deadline, int(self._clock())):
            return None
        return listing

    async def deactivate(self, listing: Listing, reason: str) -> None:
        await self._listings.deactivate(listing)
        await self._db.commit()
        logger.info(
            f"Listing {listing.id} deactivated",
            extra={
                "token_id": listing.token_id,
                "seller_address": listing.seller_address,
                "reason": reason,
            },
        )
