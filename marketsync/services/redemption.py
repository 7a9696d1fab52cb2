"""Redemption Coordinator — serves a stored authorization only while it is live.

Invariants:
    - Every redemption re-reads ownerOf and nonces from the ledger; stored
      state alone never authorizes a purchase
    - Expiry is lazy: an expired listing is refused without a write
    - Confirmed staleness (owner changed, nonce advanced, signature no longer
      valid) deactivates the listing before the refusal is raised
    - The returned tuple is the stored authorization verbatim
    - Without an explicit seller, the indexed owner's listing is served first
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.config import MarketplaceConfig
from marketsync.core.domain_types import (
    Address, RedemptionReason, normalize_address, signer_for,
)
from marketsync.core.errors import (
    ErrorContext, MalformedAuthorizationError, MarketSyncError,
    RedemptionUnavailableError,
)
from marketsync.core.listing_rules import check_signer
from marketsync.core.redemption_rules import evaluate_live_state, is_expired
from marketsync.core.repository_protocols import LedgerReader, SignatureVerifier
from marketsync.core.typed_data import build_listing_typed_data
from marketsync.models.listing import Listing
from marketsync.services.listing_repository import ListingRepository
from marketsync.services.ownership_store import OwnershipStore

logger = logging.getLogger(__name__)

_MESSAGES = {
    RedemptionReason.NOT_FOUND: "No active listing for this asset",
    RedemptionReason.EXPIRED: "Listing deadline has passed",
    RedemptionReason.OWNERSHIP_CHANGED: "Seller no longer owns this asset",
    RedemptionReason.NONCE_ADVANCED: "Seller nonce has advanced; the authorization was used or revoked",
    RedemptionReason.NONCE_MISMATCH: "Authorization nonce is ahead of the seller's on-chain nonce",
    RedemptionReason.INVALID_AUTHORIZATION: "Stored authorization no longer verifies",
}


@dataclass(frozen=True)
class RedemptionTuple:
    """Everything the buyer submits to the marketplace contract."""
    contract_address: Address
    token_id: int
    seller_address: Address
    price: int
    deadline: int
    nonce: int
    signature: str
    signer_address: Address


class RedemptionCoordinator:

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
        self._listings = ListingRepository(db)
        self._store = OwnershipStore(db)
        self._marketplace = normalize_address(config.marketplace_contract)

    async def _refuse(
        self, reason: RedemptionReason, listing: Listing | None, ctx: ErrorContext,
    ) -> RedemptionUnavailableError:
        if listing is not None and reason.deactivates:
            await self._listings.deactivate(listing)
            await self._db.commit()
        logger.info(
            f"Redemption refused: {reason.value}",
            extra={
                "token_id": str(ctx.token_id),
                "contract_address": ctx.contract_address,
                "seller_address": ctx.seller_address,
                "reason": reason.value,
            },
        )
        return RedemptionUnavailableError(reason.value, _MESSAGES[reason], ctx)

    def _signature_still_valid(self, listing: Listing) -> bool:
        seller = Address(listing.seller_address)
        typed_data = build_listing_typed_data(
            self._config, seller, int(listing.token_id),
            int(listing.price), listing.deadline, listing.nonce,
        )
        try:
            recovered = self._verifier.recover(typed_data, listing.signature)
            check_signer(recovered, signer_for(seller, Address(listing.signer_address)))
        except MarketSyncError:
            return False
        return True

    async def get_redemption(
        self,
        contract: str,
        token_id: int,
        buyer: str,
        seller: str | None = None,
        now: int | None = None,
    ) -> RedemptionTuple:
        contract = normalize_address(contract)
        buyer = normalize_address(buyer)
        seller = normalize_address(seller) if seller else None
        now = int(self._clock()) if now is None else now
        ctx = ErrorContext(contract_address=contract, token_id=token_id, seller_address=seller)

        if seller is not None and seller == buyer:
            raise MalformedAuthorizationError(
                "Buyer cannot redeem their own listing", code="SELF_PURCHASE", context=ctx,
            )

        indexed_owner = None if seller else await self._store.owner_of(contract, token_id)
        listing = await self._listings.find_active(
            contract, token_id, seller, prefer_seller=indexed_owner,
        )
        if listing is None:
            raise await self._refuse(RedemptionReason.NOT_FOUND, None, ctx)
        ctx.seller_address = listing.seller_address
        if listing.seller_address == buyer:
            raise MalformedAuthorizationError(
                "Buyer cannot redeem their own listing", code="SELF_PURCHASE", context=ctx,
            )

        if is_expired(listing.deadline, now):
            raise await self._refuse(RedemptionReason.EXPIRED, listing, ctx)

        if not self._signature_still_valid(listing):
            raise await self._refuse(RedemptionReason.INVALID_AUTHORIZATION, listing, ctx)

        listing_seller = Address(listing.seller_address)
        live_owner = await self._ledger.owner_of(contract, token_id)
        live_nonce = await self._ledger.nonce_of(self._marketplace, listing_seller)
        reason = evaluate_live_state(listing_seller, listing.nonce, live_owner, live_nonce)
        if reason is not None:
            raise await self._refuse(reason, listing, ctx)

        return RedemptionTuple(
            contract_address=Address(listing.contract_address),
            token_id=int(listing.token_id),
            seller_address=listing_seller,
            price=int(listing.price),
            deadline=listing.deadline,
            nonce=listing.nonce,
            signature=listing.signature,
            signer_address=Address(listing.signer_address),
        )
