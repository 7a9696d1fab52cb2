"""Redemption Rules — lazy expiry and live-state evaluation."""

from marketsync.core.domain_types import Address, RedemptionReason
from marketsync.core.redemption_rules import evaluate_live_state, is_expired

SELLER = Address("0x" + "aa" * 20)
OTHER = Address("0x" + "bb" * 20)


def test_deadline_is_inclusive():
    assert not is_expired(100, 100)
    assert not is_expired(100, 99)
    assert is_expired(100, 101)


def test_live_state_ok_when_owner_and_nonce_match():
    assert evaluate_live_state(SELLER, 2, SELLER, 2) is None


def test_owner_change_takes_precedence_over_nonce():
    assert evaluate_live_state(SELLER, 2, OTHER, 5) is RedemptionReason.OWNERSHIP_CHANGED


def test_nonce_advanced_and_mismatch():
    assert evaluate_live_state(SELLER, 2, SELLER, 3) is RedemptionReason.NONCE_ADVANCED
    assert evaluate_live_state(SELLER, 2, SELLER, 1) is RedemptionReason.NONCE_MISMATCH
