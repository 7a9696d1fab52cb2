"""Backoff/Chunking Executor — window splitting, retry schedule, pacing.

Tests:
    - fetch_range returns the same events for every window size
    - Windows are contiguous, inclusive and never exceed max_block_range
    - Throttling: exactly max_attempts calls, exponential delays, last error re-raised
    - The same backoff wraps non-log reads (block number)
    - Non-throttling errors propagate on the first call
    - Timeouts retried only when configured
    - Pacing delay between windows; should_stop honored between windows

Design Decisions:
    - sleep injected as a recorder: asserts the backoff schedule without waiting
"""

import pytest

from marketsync.config import SyncConfig
from marketsync.core.domain_types import EventStream
from marketsync.core.errors import LedgerError, LedgerRateLimitError, LedgerTimeoutError
from marketsync.infrastructure.chunked_executor import (
    BackoffChunkExecutor, split_windows, stream_filters,
)

from tests.services.fake_ledger import FakeLedger
from tests.signing import ALICE, BOB, CONFIG


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _executor(ledger, sleep=None, **overrides) -> BackoffChunkExecutor:
    settings = {"window_pacing_ms": 0, "backoff_base_ms": 100, "max_attempts": 4}
    settings.update(overrides)
    return BackoffChunkExecutor(
        ledger, stream_filters(CONFIG), SyncConfig(**settings),
        sleep=sleep or RecordingSleep(),
    )


def _ledger_with_transfers(blocks) -> FakeLedger:
    ledger = FakeLedger()
    for i, block in enumerate(blocks):
        ledger.add_transfer(ALICE.address, BOB.address, i, block, log_index=i % 3)
    return ledger


def test_split_windows_covers_range_inclusively():
    assert split_windows(0, 9, 4) == [(0, 3), (4, 7), (8, 9)]
    assert split_windows(5, 5, 450) == [(5, 5)]
    assert split_windows(6, 5, 450) == []


def test_split_windows_rejects_zero_size():
    with pytest.raises(ValueError):
        split_windows(0, 10, 0)


@pytest.mark.parametrize("size", [1, 2, 3, 7, 10, 31, 450])
async def test_fetch_range_independent_of_window_size(size):
    blocks = [0, 0, 3, 4, 9, 10, 17, 22, 30]
    ledger = _ledger_with_transfers(blocks)
    events = await _executor(ledger, max_block_range=size).fetch_range(
        EventStream.TRANSFER, 0, 30,
    )
    assert [(e.block_number, e.log_index) for e in events] == sorted(
        (block, i % 3) for i, block in enumerate(blocks)
    )
    ranges = [(start, end) for _, _, start, end in ledger.get_logs_calls]
    assert ranges == split_windows(0, 30, size)
    assert all(end - start + 1 <= size for start, end in ranges)


async def test_empty_range_makes_no_calls():
    ledger = FakeLedger()
    assert await _executor(ledger).fetch_range(EventStream.TRANSFER, 10, 9) == []
    assert ledger.get_logs_calls == []


async def test_throttling_retries_then_succeeds():
    ledger = _ledger_with_transfers([1])
    ledger.errors = [LedgerRateLimitError("limit exceeded", "eth_getLogs") for _ in range(2)]
    sleep = RecordingSleep()
    events = await _executor(ledger, sleep).fetch_range(EventStream.TRANSFER, 0, 5)
    assert len(events) == 1
    assert len(ledger.get_logs_calls) == 3
    assert sleep.delays == [0.1, 0.2]


async def test_throttling_stops_after_max_attempts_and_reraises_last_error():
    ledger = FakeLedger()
    errors = [LedgerRateLimitError(f"limit {i}", "eth_getLogs") for i in range(10)]
    ledger.errors = list(errors)
    sleep = RecordingSleep()
    with pytest.raises(LedgerRateLimitError) as exc:
        await _executor(ledger, sleep, max_attempts=4).fetch_range(EventStream.TRANSFER, 0, 5)
    assert exc.value is errors[3]
    assert len(ledger.get_logs_calls) == 4
    assert sleep.delays == [0.1, 0.2, 0.4]


async def test_non_throttling_error_propagates_immediately():
    ledger = FakeLedger()
    ledger.errors = [LedgerError("bad params", "eth_getLogs")]
    sleep = RecordingSleep()
    with pytest.raises(LedgerError):
        await _executor(ledger, sleep).fetch_range(EventStream.TRANSFER, 0, 5)
    assert len(ledger.get_logs_calls) == 1
    assert sleep.delays == []


async def test_timeout_not_retried_by_default():
    ledger = FakeLedger()
    ledger.errors = [LedgerTimeoutError("eth_getLogs")]
    with pytest.raises(LedgerTimeoutError):
        await _executor(ledger).fetch_range(EventStream.TRANSFER, 0, 5)
    assert len(ledger.get_logs_calls) == 1


async def test_timeout_retried_when_configured():
    ledger = FakeLedger()
    ledger.errors = [LedgerTimeoutError("eth_getLogs")]
    await _executor(ledger, retry_on_timeout=True).fetch_range(EventStream.TRANSFER, 0, 5)
    assert len(ledger.get_logs_calls) == 2


async def test_pacing_between_windows_only():
    ledger = FakeLedger()
    sleep = RecordingSleep()
    await _executor(ledger, sleep, max_block_range=10, window_pacing_ms=50).fetch_range(
        EventStream.TRANSFER, 0, 29,
    )
    assert sleep.delays == [0.05, 0.05]


async def test_should_stop_checked_before_each_window():
    ledger = FakeLedger()
    executor = _executor(ledger, max_block_range=10)
    seen = []
    async for window in executor.iter_windows(
        [EventStream.TRANSFER, EventStream.PURCHASE], 0, 49,
        should_stop=lambda: len(seen) >= 2,
    ):
        seen.append((window.start, window.end))
    assert seen == [(0, 9), (10, 19)]
    # both streams fetched for each completed window
    assert len(ledger.get_logs_calls) == 4


async def test_malformed_log_skipped_not_fatal():
    ledger = _ledger_with_transfers([2, 3])
    del ledger.logs[0]["logIndex"]
    events = await _executor(ledger).fetch_range(EventStream.TRANSFER, 0, 5)
    assert [e.block_number for e in events] == [3]


async def test_log_with_non_string_topic_skipped():
    ledger = _ledger_with_transfers([2, 3])
    ledger.logs[1]["topics"][2] = None
    events = await _executor(ledger).fetch_range(EventStream.TRANSFER, 0, 5)
    assert [e.block_number for e in events] == [2]


async def test_call_with_backoff_wraps_any_ledger_read():
    ledger = FakeLedger(latest=77)
    ledger.block_number_errors = [
        LedgerRateLimitError("limit exceeded", "eth_blockNumber") for _ in range(2)
    ]
    sleep = RecordingSleep()
    latest = await _executor(ledger, sleep).call_with_backoff(ledger.latest_block_number)
    assert latest == 77
    assert ledger.block_number_calls == 3
    assert sleep.delays == [0.1, 0.2]
