"""Listing Authorization Rules — pure checks for the create-listing pipeline.

Invariants:
    - Each check raises a distinct validation error; none touches IO
    - Signer authorization dispatches on the Signer variant, never on flags
    - Price is uint256; deadline and nonce are stored as 64-bit integers
    - Deadline must lie in the future

Design Decisions:
    - Delegated signing trusts the declared key here; membership of that key
      in the wallet is enforced by the marketplace contract at redemption
"""

from marketsync.core.domain_types import (
    Address, DelegatedSigner, DirectSigner, Signer, UINT256_MAX,
)
from marketsync.core.errors import (
    ErrorContext,
    InvalidSignatureError,
    MalformedAuthorizationError,
    NotOwnerError,
    StaleNonceError,
)

INT64_MAX = 2**63 - 1


def validate_listing_terms(
    price: int, deadline: int, nonce: int, now: int,
    context: ErrorContext | None = None,
) -> None:
    """Reject listings that could never be redeemed on-chain."""
    if not 0 < price <= UINT256_MAX:
        raise MalformedAuthorizationError(
            f"price must be a positive uint256, got {price}", context=context,
        )
    if not 0 <= nonce <= INT64_MAX:
        raise MalformedAuthorizationError(
            f"nonce must be a non-negative 64-bit integer, got {nonce}", context=context,
        )
    if deadline > INT64_MAX:
        raise MalformedAuthorizationError(
            f"deadline out of 64-bit range: {deadline}", context=context,
        )
    if deadline <= now:
        raise MalformedAuthorizationError(
            f"deadline {deadline} is not in the future (now={now})",
            code="DEADLINE_PASSED", context=context,
        )


def check_ownership(
    seller: Address, indexed_owner: Address | None,
    context: ErrorContext | None = None,
) -> None:
    if indexed_owner != seller:
        raise NotOwnerError(seller, indexed_owner, context)


def authorized_addresses(signer: Signer) -> frozenset[Address]:
    """Addresses whose signature is accepted for this signer variant."""
    if isinstance(signer, DirectSigner):
        return frozenset({signer.address})
    if isinstance(signer, DelegatedSigner):
        return frozenset({signer.wallet, signer.key})
    raise TypeError(f"unknown signer variant: {type(signer).__name__}")


def check_signer(
    recovered: Address, signer: Signer, context: ErrorContext | None = None,
) -> None:
    if recovered not in authorized_addresses(signer):
        raise InvalidSignatureError(recovered, context)


def check_live_nonce(
    signed_nonce: int, live_nonce: int, context: ErrorContext | None = None,
) -> None:
    if signed_nonce != live_nonce:
        raise StaleNonceError(signed_nonce, live_nonce, context)
