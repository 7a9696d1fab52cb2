"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Address values are EIP-55 checksummed (normalize_address is the only constructor)
    - LedgerPosition orders events by (block_number, log_index); ledger order, never wall clock
    - Signer is a tagged variant: DirectSigner | DelegatedSigner
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType for Address: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, Union

from eth_utils import is_address, to_checksum_address


# ─── Identity Types ──────────────────────────────────────────────

Address = NewType("Address", str)

ZERO_ADDRESS = Address("0x0000000000000000000000000000000000000000")

UINT256_MAX = 2**256 - 1


def normalize_address(value: str) -> Address:
    """Validate and checksum an address. Raises ValueError on malformed input."""
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"invalid address: {value!r}")
    return Address(to_checksum_address(value))


@dataclass(frozen=True)
class AssetKey:
    """(contract, tokenId) — unique identity of an NFT."""
    contract: Address
    token_id: int

    def __str__(self) -> str:
        return f"{self.contract}#{self.token_id}"


@dataclass(frozen=True, order=True)
class LedgerPosition:
    """Total order of ledger events."""
    block_number: int
    log_index: int


# ─── Signer Variant ──────────────────────────────────────────────

@dataclass(frozen=True)
class DirectSigner:
    """The seller's own key signed the authorization."""
    address: Address


@dataclass(frozen=True)
class DelegatedSigner:
    """A key authorized to act for a smart-contract wallet signed it."""
    wallet: Address
    key: Address


Signer = Union[DirectSigner, DelegatedSigner]


def signer_for(seller: Address, signer_address: Address | None) -> Signer:
    """Build the signer variant from a seller and an optional declared delegate."""
    if signer_address is None or signer_address == seller:
        return DirectSigner(seller)
    return DelegatedSigner(wallet=seller, key=signer_address)


# ─── Enums ───────────────────────────────────────────────────────

class EventStream(str, Enum):
    """Ownership-changing event streams pulled from the ledger."""
    TRANSFER = "transfer"
    PURCHASE = "purchase"


class RedemptionReason(str, Enum):
    """Why no authorization could be served. All map to HTTP 404."""
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    OWNERSHIP_CHANGED = "ownership_changed"
    NONCE_ADVANCED = "nonce_advanced"
    NONCE_MISMATCH = "nonce_mismatch"
    INVALID_AUTHORIZATION = "invalid_authorization"

    @property
    def deactivates(self) -> bool:
        """Confirmed observations retire the listing; lazy expiry does not."""
        return self in (
            RedemptionReason.OWNERSHIP_CHANGED,
            RedemptionReason.NONCE_ADVANCED,
            RedemptionReason.INVALID_AUTHORIZATION,
        )
