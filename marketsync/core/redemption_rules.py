"""Redemption Liveness — pure decisions on whether a stored listing may be served.

Invariants:
    - is_expired is the lazy-expiry check; it never implies a write
    - evaluate_live_state compares against LIVE ledger reads, never stored values
    - Returned reasons say whether the listing is retired (RedemptionReason.deactivates)
"""

from marketsync.core.domain_types import Address, RedemptionReason


def is_expired(deadline: int, now: int) -> bool:
    """Deadline is inclusive on-chain (block.timestamp <= deadline)."""
    return deadline < now


def evaluate_live_state(
    seller: Address,
    listing_nonce: int,
    live_owner: Address,
    live_nonce: int,
) -> RedemptionReason | None:
    """None if the listing is still redeemable against the live ledger."""
    if live_owner != seller:
        return RedemptionReason.OWNERSHIP_CHANGED
    if live_nonce > listing_nonce:
        return RedemptionReason.NONCE_ADVANCED
    if live_nonce < listing_nonce:
        return RedemptionReason.NONCE_MISMATCH
    return None
