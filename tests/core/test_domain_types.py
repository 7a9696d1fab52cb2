"""Domain Types — address normalization, ledger ordering, signer variant.

Tests:
    - normalize_address checksums and rejects malformed input
    - LedgerPosition orders by block, then log index
    - signer_for picks the variant from the declared signer
    - Only confirmed staleness reasons deactivate a listing
"""

import pytest

from marketsync.core.domain_types import (
    DelegatedSigner, DirectSigner, LedgerPosition, RedemptionReason,
    normalize_address, signer_for,
)

LOWER = "0x" + "ab" * 20


def test_normalize_address_checksums_lowercase_input():
    address = normalize_address(LOWER)
    assert address.lower() == LOWER
    assert address != LOWER
    assert normalize_address(address.upper().replace("0X", "0x")) == address


@pytest.mark.parametrize("bad", ["", "0x123", "not-an-address", "0x" + "g" * 40, None])
def test_normalize_address_rejects_malformed(bad):
    with pytest.raises(ValueError):
        normalize_address(bad)


def test_ledger_position_orders_by_block_then_log_index():
    assert LedgerPosition(5, 9) < LedgerPosition(6, 0)
    assert LedgerPosition(6, 0) < LedgerPosition(6, 1)
    assert LedgerPosition(6, 1) == LedgerPosition(6, 1)
    assert sorted([LedgerPosition(7, 0), LedgerPosition(2, 3), LedgerPosition(2, 1)]) == [
        LedgerPosition(2, 1), LedgerPosition(2, 3), LedgerPosition(7, 0),
    ]


def test_signer_for_without_delegate_is_direct():
    seller = normalize_address(LOWER)
    assert signer_for(seller, None) == DirectSigner(seller)
    assert signer_for(seller, seller) == DirectSigner(seller)


def test_signer_for_with_other_key_is_delegated():
    seller = normalize_address(LOWER)
    key = normalize_address("0x" + "cd" * 20)
    assert signer_for(seller, key) == DelegatedSigner(wallet=seller, key=key)


def test_only_confirmed_staleness_deactivates():
    assert {r for r in RedemptionReason if r.deactivates} == {
        RedemptionReason.OWNERSHIP_CHANGED,
        RedemptionReason.NONCE_ADVANCED,
        RedemptionReason.INVALID_AUTHORIZATION,
    }
