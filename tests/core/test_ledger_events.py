"""Ledger Events — log parsing and Transfer / NFTPurchased decoding.

Tests:
    - Wire-format logs decode to typed events with checksummed addresses
    - Malformed logs raise EventIntegrityError (caller skips them)
    - merge_by_position interleaves streams in ledger order
"""

import pytest

from marketsync.core.domain_types import EventStream, LedgerPosition, ZERO_ADDRESS
from marketsync.core.errors import EventIntegrityError
from marketsync.core.ledger_events import (
    decode_purchase, decode_transfer, merge_by_position, raw_event_from_log,
)

from tests.services.fake_ledger import purchase_log, transfer_log
from tests.signing import ALICE, BOB


def test_decode_transfer():
    raw = raw_event_from_log(
        EventStream.TRANSFER, transfer_log(ALICE.address, BOB.address, 42, 100, 3),
    )
    event = decode_transfer(raw)
    assert event.from_address == ALICE.address
    assert event.to_address == BOB.address
    assert event.token_id == 42
    assert event.position == LedgerPosition(100, 3)


def test_decode_mint_has_zero_sender():
    raw = raw_event_from_log(
        EventStream.TRANSFER, transfer_log(ZERO_ADDRESS, ALICE.address, 1, 5),
    )
    assert decode_transfer(raw).from_address == ZERO_ADDRESS


def test_decode_purchase_reads_price_from_data():
    raw = raw_event_from_log(
        EventStream.PURCHASE, purchase_log(BOB.address, 7, 10**18, 200, 1),
    )
    event = decode_purchase(raw)
    assert event.buyer == BOB.address
    assert event.token_id == 7
    assert event.price == 10**18
    assert event.position == LedgerPosition(200, 1)


def test_raw_event_requires_hex_positions():
    log = transfer_log(ALICE.address, BOB.address, 1, 5)
    del log["blockNumber"]
    with pytest.raises(EventIntegrityError):
        raw_event_from_log(EventStream.TRANSFER, log)


def test_non_string_topic_is_integrity_error():
    log = transfer_log(ALICE.address, BOB.address, 1, 5)
    log["topics"][1] = 12345
    with pytest.raises(EventIntegrityError):
        raw_event_from_log(EventStream.TRANSFER, log)


def test_transfer_with_missing_topic_is_integrity_error():
    log = transfer_log(ALICE.address, BOB.address, 1, 5)
    log["topics"] = log["topics"][:3]
    with pytest.raises(EventIntegrityError):
        decode_transfer(raw_event_from_log(EventStream.TRANSFER, log))


def test_purchase_with_truncated_data_is_integrity_error():
    log = purchase_log(BOB.address, 1, 5, 9)
    log["data"] = "0x1234"
    with pytest.raises(EventIntegrityError):
        decode_purchase(raw_event_from_log(EventStream.PURCHASE, log))


def test_merge_by_position_interleaves_streams():
    transfers = [
        raw_event_from_log(EventStream.TRANSFER, transfer_log(ALICE.address, BOB.address, 1, 10, 0)),
        raw_event_from_log(EventStream.TRANSFER, transfer_log(BOB.address, ALICE.address, 1, 12, 0)),
    ]
    purchases = [
        raw_event_from_log(EventStream.PURCHASE, purchase_log(BOB.address, 1, 5, 10, 1)),
    ]
    merged = merge_by_position(transfers, purchases)
    assert [(e.block_number, e.log_index) for e in merged] == [(10, 0), (10, 1), (12, 0)]
