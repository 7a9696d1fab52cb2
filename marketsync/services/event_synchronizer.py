"""Event Synchronizer — reconciles the ownership store with ledger events.

Invariants:
    - from_block = max(0, latest - lookback_window, cursor + 1); to_block = latest
    - One transaction per window: ownership writes, listing retirement and the
      cursor advance commit together or not at all
    - Within a window both streams are applied merged in ledger order
    - Re-applying any window is a no-op (per-asset ledger position)
    - A malformed event is logged and skipped; the rest of the window proceeds
    - Ledger or database failures end the pass; the cursor stays at the last
      committed window
    - Every ledger read of a pass (block number, logs, receipts) goes through
      the executor backoff

Design Decisions:
    - Cursor stored per stream but always advanced together: both streams are
      fetched for every window, so a pass resumes from their minimum
    - Purchases name the NFT contract implicitly: the marketplace emits them,
      but the asset lives on the configured NFT contract
    - apply_receipt reconciles one transaction immediately (buyer just
      purchased) without touching cursors; the next pass re-applies it as a no-op
    - Callers serialize passes, receipts and resets through SyncCoordinator
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from marketsync.config import MarketplaceConfig, SyncConfig
from marketsync.core.domain_types import EventStream, LedgerPosition, normalize_address
from marketsync.core.errors import EventIntegrityError, ResourceNotFoundError
from marketsync.core.ledger_events import (
    RawEvent, decode_purchase, decode_transfer, merge_by_position, raw_event_from_log,
)
from marketsync.core.repository_protocols import LedgerReader
from marketsync.infrastructure.chunked_executor import (
    BackoffChunkExecutor, FetchedWindow, stream_filters,
)
from marketsync.infrastructure.database import DatabaseSessionManager
from marketsync.services.cursor_repository import CursorRepository
from marketsync.services.listing_repository import ListingRepository
from marketsync.services.ownership_store import OwnershipChange, OwnershipStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one synchronization pass."""
    from_block: int
    to_block: int
    new_cursor: int
    applied: dict[EventStream, int] = field(
        default_factory=lambda: {stream: 0 for stream in EventStream},
    )
    skipped: int = 0
    windows: int = 0
    deactivated_listings: int = 0
    aborted: bool = False

    @property
    def total(self) -> int:
        return sum(self.applied.values())


@dataclass
class _WindowOutcome:
    applied: dict[EventStream, int] = field(
        default_factory=lambda: {stream: 0 for stream in EventStream},
    )
    skipped: int = 0
    deactivated: int = 0


class EventSynchronizer:
    """Pulls Transfer / NFTPurchased events and applies them window by window."""

    def __init__(
        self,
        sessions: DatabaseSessionManager,
        ledger: LedgerReader,
        executor: BackoffChunkExecutor,
        marketplace: MarketplaceConfig,
        sync: SyncConfig,
        start_block: int = 0,
    ):
        self._sessions = sessions
        self._ledger = ledger
        self._executor = executor
        self._marketplace = marketplace
        self._sync = sync
        self._start_block = start_block
        self._nft_contract = normalize_address(marketplace.nft_contract)
        self._filters = stream_filters(marketplace)

    async def stored_cursor(self) -> int:
        """Lowest stream cursor; start_block - 1 when a stream never synced."""
        async with self._sessions.session() as db:
            cursors = await CursorRepository(db).get_all()
        default = self._start_block - 1
        return min(
            default if block is None else block for block in cursors.values()
        )

    async def sync_since(
        self,
        cursor: int | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> SyncResult:
        latest = await self._executor.call_with_backoff(self._ledger.latest_block_number)
        if cursor is None:
            cursor = await self.stored_cursor()
        from_block = max(0, latest - self._sync.lookback_window, cursor + 1)
        result = SyncResult(from_block=from_block, to_block=latest, new_cursor=cursor)
        if from_block > latest:
            logger.info(f"Already synced to block {cursor}, latest is {latest}")
            return result

        logger.info(
            f"Sync pass starting: blocks {from_block}..{latest}",
            extra={"from_block": from_block, "to_block": latest},
        )
        async for window in self._executor.iter_windows(
            list(EventStream), from_block, latest, should_stop,
        ):
            outcome = await self._apply_window(window)
            result.windows += 1
            result.new_cursor = window.end
            result.skipped += outcome.skipped
            result.deactivated_listings += outcome.deactivated
            for stream, count in outcome.applied.items():
                result.applied[stream] += count

        result.aborted = result.new_cursor < latest
        logger.info(
            f"Sync pass {'aborted' if result.aborted else 'finished'} "
            f"at block {result.new_cursor}",
            extra={
                "from_block": from_block, "to_block": result.new_cursor,
                "applied": result.total, "skipped": result.skipped,
            },
        )
        return result

    async def _apply_window(self, window: FetchedWindow) -> _WindowOutcome:
        outcome = await self._apply_events(window.merged(), advance_to=window.end)
        logger.info(
            f"Window {window.start}..{window.end} committed",
            extra={
                "from_block": window.start, "to_block": window.end,
                "applied": sum(outcome.applied.values()), "skipped": outcome.skipped,
            },
        )
        return outcome

    async def _apply_events(
        self, events: list[RawEvent], advance_to: int | None = None,
    ) -> _WindowOutcome:
        outcome = _WindowOutcome()
        async with self._sessions.session() as db:
            store = OwnershipStore(db)
            listings = ListingRepository(db)
            for event in events:
                try:
                    change = await self._apply_event(store, event)
                except EventIntegrityError as e:
                    outcome.skipped += 1
                    logger.warning(
                        f"Skipping event: {e.message}",
                        extra={
                            "stream": event.stream.value,
                            "from_block": event.block_number,
                            "error_code": e.code,
                        },
                    )
                    continue
                if change is None:
                    continue
                outcome.applied[event.stream] += 1
                outcome.deactivated += await listings.deactivate_not_owned_by(
                    change.asset.contract, change.asset.token_id, change.new_owner,
                )
            if advance_to is not None:
                cursors = CursorRepository(db)
                for stream in EventStream:
                    await cursors.advance(stream, advance_to)
            await db.commit()
        return outcome

    async def _apply_event(
        self, store: OwnershipStore, event: RawEvent,
    ) -> OwnershipChange | None:
        if event.stream is EventStream.TRANSFER:
            transfer = decode_transfer(event)
            return await self.apply_transfer(
                store, event.address, transfer.to_address,
                transfer.token_id, transfer.position,
            )
        purchase = decode_purchase(event)
        return await self.apply_purchase(
            store, purchase.buyer, purchase.token_id, purchase.price, purchase.position,
        )

    async def apply_transfer(
        self,
        store: OwnershipStore,
        contract: str,
        to: str,
        token_id: int,
        position: LedgerPosition,
    ) -> OwnershipChange | None:
        """Mints and burns included: a burn leaves the zero address as owner."""
        try:
            contract = normalize_address(contract)
        except ValueError as e:
            raise EventIntegrityError(f"Transfer emitted by invalid address: {e}")
        return await store.apply_ownership(contract, token_id, to, position)

    async def apply_purchase(
        self,
        store: OwnershipStore,
        buyer: str,
        token_id: int,
        price: int,
        position: LedgerPosition,
    ) -> OwnershipChange | None:
        logger.debug(
            f"Purchase of token {token_id} for {price} wei",
            extra={"token_id": str(token_id)},
        )
        return await store.apply_ownership(self._nft_contract, token_id, buyer, position)

    def _stream_of(self, log: dict) -> EventStream | None:
        """Stream a receipt log belongs to, or None for unrelated logs."""
        try:
            address = normalize_address(log.get("address", ""))
            topic = (log.get("topics") or [""])[0].lower()
        except (ValueError, AttributeError):
            return None
        for stream, stream_filter in self._filters.items():
            if stream_filter.address == address and stream_filter.topic == topic:
                return stream
        return None

    async def apply_receipt(self, tx_hash: str) -> SyncResult:
        """Apply the ownership events of one transaction; cursors untouched."""
        receipt = await self._executor.call_with_backoff(
            self._ledger.get_transaction_receipt, tx_hash,
        )
        if receipt is None:
            raise ResourceNotFoundError("Transaction", tx_hash)
        block_number = int(receipt.get("blockNumber") or "0x0", 16)

        events = []
        skipped = 0
        for log in receipt.get("logs", []):
            stream = self._stream_of(log)
            if stream is None:
                continue
            try:
                events.append(raw_event_from_log(stream, log))
            except EventIntegrityError as e:
                skipped += 1
                logger.warning(f"Skipping receipt log: {e.message}")

        outcome = await self._apply_events(merge_by_position(events))
        result = SyncResult(
            from_block=block_number, to_block=block_number,
            new_cursor=await self.stored_cursor(),
            applied=outcome.applied,
            skipped=outcome.skipped + skipped,
            deactivated_listings=outcome.deactivated,
        )
        logger.info(
            f"Transaction {tx_hash} applied",
            extra={"applied": result.total, "skipped": result.skipped},
        )
        return result

    async def reset_cursor(self, block_number: int) -> None:
        async with self._sessions.session() as db:
            await CursorRepository(db).reset(block_number)
            await db.commit()
