"""Backoff/Chunking Executor — bounded-window log fetching with throttling backoff.

Invariants:
    - [from_block, to_block] is split into inclusive windows of at most max_block_range
    - Results are concatenated in ascending ledger order, independent of window size
    - Throttling: wait backoff_base_ms * 2**attempt, at most max_attempts calls per
      ledger request (logs per window, block number, receipts), then the last
      error is re-raised unmodified
    - Non-throttling errors propagate on the first occurrence
    - Fixed pacing delay between successive windows
    - should_stop checked before each window, never inside one

Design Decisions:
    - No state beyond configuration: one executor is shared by every sync job
    - sleep injectable: tests observe the backoff schedule without waiting
    - Timeouts count as throttling only when SyncConfig.retry_on_timeout is set
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from marketsync.config import MarketplaceConfig, SyncConfig
from marketsync.core.domain_types import EventStream, normalize_address
from marketsync.core.errors import (
    EventIntegrityError, LedgerError, LedgerRateLimitError, LedgerTimeoutError,
)
from marketsync.core.ledger_events import (
    PURCHASE_TOPIC, TRANSFER_TOPIC, RawEvent, merge_by_position, raw_event_from_log,
)
from marketsync.core.repository_protocols import LedgerReader

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
T = TypeVar("T")


@dataclass(frozen=True)
class StreamFilter:
    """Log filter (emitting contract + topic0) for one event stream."""
    address: str
    topic: str


@dataclass
class FetchedWindow:
    start: int
    end: int
    events: dict[EventStream, list[RawEvent]] = field(default_factory=dict)

    def merged(self) -> list[RawEvent]:
        """All streams of this window in ledger order."""
        return merge_by_position(*self.events.values())


def stream_filters(config: MarketplaceConfig) -> dict[EventStream, StreamFilter]:
    return {
        EventStream.TRANSFER: StreamFilter(
            normalize_address(config.nft_contract), TRANSFER_TOPIC,
        ),
        EventStream.PURCHASE: StreamFilter(
            normalize_address(config.marketplace_contract), PURCHASE_TOPIC,
        ),
    }


def split_windows(from_block: int, to_block: int, size: int) -> list[tuple[int, int]]:
    """Inclusive windows covering [from_block, to_block]; empty if from > to."""
    if size < 1:
        raise ValueError("window size must be >= 1")
    windows = []
    start = from_block
    while start <= to_block:
        end = min(start + size - 1, to_block)
        windows.append((start, end))
        start = end + 1
    return windows


class BackoffChunkExecutor:
    """Fetches event streams window by window, retrying throttled calls."""

    def __init__(
        self,
        ledger: LedgerReader,
        streams: dict[EventStream, StreamFilter],
        config: SyncConfig,
        sleep: Sleep = asyncio.sleep,
    ):
        self._ledger = ledger
        self._streams = streams
        self._config = config
        self._sleep = sleep

    def _is_retryable(self, error: LedgerError) -> bool:
        if isinstance(error, LedgerRateLimitError):
            return True
        return self._config.retry_on_timeout and isinstance(error, LedgerTimeoutError)

    def _backoff_ms(self, attempt: int) -> int:
        return self._config.backoff_base_ms * (2 ** attempt)

    async def call_with_backoff(
        self,
        fn: Callable[..., Awaitable[T]],
        *args,
        extra: dict | None = None,
    ) -> T:
        """Await fn(*args), retrying throttled calls up to max_attempts in total."""
        extra = extra or {}
        name = getattr(fn, "__name__", "ledger call")
        attempt = 0
        while True:
            try:
                return await fn(*args)
            except LedgerError as e:
                if not self._is_retryable(e):
                    raise
                if attempt + 1 >= self._config.max_attempts:
                    logger.error(
                        f"Retry ceiling reached for {name}",
                        extra={**extra, "attempt": attempt + 1, "error_code": e.code},
                    )
                    raise
                delay_ms = self._backoff_ms(attempt)
                logger.warning(
                    f"Ledger throttled on {name}, retry after {delay_ms}ms "
                    f"(attempt {attempt + 1})",
                    extra={**extra, "attempt": attempt + 1, "delay_ms": delay_ms},
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1

    async def _fetch_window(
        self, stream: EventStream, start: int, end: int,
    ) -> list[RawEvent]:
        stream_filter = self._streams[stream]
        logs = await self.call_with_backoff(
            self._ledger.get_logs,
            stream_filter.address, [stream_filter.topic], start, end,
            extra={"stream": stream.value, "from_block": start, "to_block": end},
        )
        events = []
        for log in logs:
            try:
                events.append(raw_event_from_log(stream, log))
            except EventIntegrityError as e:
                logger.warning(
                    f"Skipping malformed log: {e.message}",
                    extra={"stream": stream.value, "error_code": e.code},
                )
        events.sort(key=lambda ev: (ev.block_number, ev.log_index))
        return events

    async def iter_windows(
        self,
        streams: Sequence[EventStream],
        from_block: int,
        to_block: int,
        should_stop: Callable[[], bool] | None = None,
    ) -> AsyncIterator[FetchedWindow]:
        """Yield each window with every requested stream fetched."""
        windows = split_windows(from_block, to_block, self._config.max_block_range)
        for index, (start, end) in enumerate(windows):
            if should_stop is not None and should_stop():
                logger.info(
                    "Fetch stopped before window",
                    extra={"from_block": start, "to_block": end},
                )
                return
            if index > 0 and self._config.window_pacing_ms > 0:
                await self._sleep(self._config.window_pacing_ms / 1000)
            window = FetchedWindow(start=start, end=end)
            for stream in streams:
                window.events[stream] = await self._fetch_window(stream, start, end)
            yield window

    async def fetch_range(
        self, stream: EventStream, from_block: int, to_block: int,
    ) -> list[RawEvent]:
        """All events of one stream in [from_block, to_block], ascending."""
        events: list[RawEvent] = []
        async for window in self.iter_windows([stream], from_block, to_block):
            events.extend(window.events[stream])
        return events
