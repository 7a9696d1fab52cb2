"""Ledger Events — raw log records and their decoding into ownership events.

Invariants:
    - RawEvent carries the ledger position; decoding never reorders
    - decode_* raise EventIntegrityError for malformed logs (caller skips the event)
    - Topic hashes are derived from canonical event signatures, not hard-coded hex

Design Decisions:
    - Decoding lives in core (pure): the executor returns RawEvent, the
      synchronizer decodes, so a malformed record is skipped per event and
      never fails a whole window fetch
"""

from dataclasses import dataclass, field

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, keccak, to_hex

from marketsync.core.domain_types import (
    Address, EventStream, LedgerPosition, normalize_address,
)
from marketsync.core.errors import EventIntegrityError, ErrorContext


TRANSFER_SIGNATURE = "Transfer(address,address,uint256)"
PURCHASE_SIGNATURE = "NFTPurchased(address,uint256,uint256)"

TRANSFER_TOPIC = to_hex(keccak(text=TRANSFER_SIGNATURE))
PURCHASE_TOPIC = to_hex(keccak(text=PURCHASE_SIGNATURE))


@dataclass(frozen=True)
class RawEvent:
    """One log entry as returned by eth_getLogs, tagged with its stream."""
    stream: EventStream
    address: str
    block_number: int
    log_index: int
    transaction_hash: str
    topics: tuple[str, ...] = field(default_factory=tuple)
    data: str = "0x"

    @property
    def position(self) -> LedgerPosition:
        return LedgerPosition(self.block_number, self.log_index)


@dataclass(frozen=True)
class TransferEvent:
    from_address: Address
    to_address: Address
    token_id: int
    position: LedgerPosition
    transaction_hash: str


@dataclass(frozen=True)
class PurchaseEvent:
    buyer: Address
    token_id: int
    price: int
    position: LedgerPosition
    transaction_hash: str


def raw_event_from_log(stream: EventStream, log: dict) -> RawEvent:
    """Build a RawEvent from a JSON-RPC log object (hex-encoded quantities)."""
    try:
        return RawEvent(
            stream=stream,
            address=log["address"],
            block_number=int(log["blockNumber"], 16),
            log_index=int(log["logIndex"], 16),
            transaction_hash=log.get("transactionHash", ""),
            topics=tuple(t.lower() for t in log.get("topics", [])),
            data=log.get("data", "0x"),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise EventIntegrityError(f"Malformed log object: {e}")


def _topic_address(topic: str) -> Address:
    raw = decode_hex(topic)
    if len(raw) != 32:
        raise ValueError(f"topic is {len(raw)} bytes, expected 32")
    return normalize_address(to_hex(raw[-20:]))


def _topic_uint(topic: str) -> int:
    return int(topic, 16)


def _integrity_error(event: RawEvent, exc: Exception) -> EventIntegrityError:
    return EventIntegrityError(
        f"Cannot decode {event.stream.value} log at block "
        f"{event.block_number} index {event.log_index}: {exc}",
        ErrorContext(stream=event.stream.value),
    )


def decode_transfer(event: RawEvent) -> TransferEvent:
    """Transfer(address indexed from, address indexed to, uint256 indexed tokenId)."""
    try:
        if len(event.topics) != 4 or event.topics[0] != TRANSFER_TOPIC:
            raise ValueError("unexpected topic layout")
        return TransferEvent(
            from_address=_topic_address(event.topics[1]),
            to_address=_topic_address(event.topics[2]),
            token_id=_topic_uint(event.topics[3]),
            position=event.position,
            transaction_hash=event.transaction_hash,
        )
    except ValueError as e:
        raise _integrity_error(event, e)


def decode_purchase(event: RawEvent) -> PurchaseEvent:
    """NFTPurchased(address indexed buyer, uint256 indexed tokenId, uint256 price)."""
    try:
        if len(event.topics) != 3 or event.topics[0] != PURCHASE_TOPIC:
            raise ValueError("unexpected topic layout")
        (price,) = abi_decode(["uint256"], decode_hex(event.data))
        return PurchaseEvent(
            buyer=_topic_address(event.topics[1]),
            token_id=_topic_uint(event.topics[2]),
            price=price,
            position=event.position,
            transaction_hash=event.transaction_hash,
        )
    except (ValueError, DecodingError) as e:
        raise _integrity_error(event, e)


def merge_by_position(*batches: list[RawEvent]) -> list[RawEvent]:
    """Merge per-stream batches into one list in ledger order (stable)."""
    merged = [event for batch in batches for event in batch]
    merged.sort(key=lambda e: (e.block_number, e.log_index))
    return merged
