"""Ownership Reducer — pure last-writer-wins application of ownership events.

Invariants:
    - reduce_ownership is PURE: returns the next AssetState or None (no change)
    - An event at or before the asset's stored position is a no-op, which makes
      re-application idempotent and out-of-order application harmless
    - Transfers and purchases reduce identically: the recipient becomes owner

Design Decisions:
    - Position stored per asset rather than trusting fetch order alone: the
      two streams come from different contracts and a purchase may or may not
      have a matching transfer in the same transaction
"""

from dataclasses import dataclass

from marketsync.core.domain_types import Address, LedgerPosition
from marketsync.core.ledger_events import PurchaseEvent, TransferEvent


@dataclass(frozen=True)
class AssetState:
    """Ownership-relevant slice of an Asset row."""
    owner: Address
    position: LedgerPosition | None


def reduce_ownership(
    current: AssetState | None, new_owner: Address, position: LedgerPosition,
) -> AssetState | None:
    """Next state after an ownership event, or None if the event is already reflected."""
    if current is not None and current.position is not None:
        if position <= current.position:
            return None
    return AssetState(owner=new_owner, position=position)


def apply_transfer(current: AssetState | None, event: TransferEvent) -> AssetState | None:
    return reduce_ownership(current, event.to_address, event.position)


def apply_purchase(current: AssetState | None, event: PurchaseEvent) -> AssetState | None:
    return reduce_ownership(current, event.buyer, event.position)
