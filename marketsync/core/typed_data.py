"""Listing Authorization Typed Data — canonical EIP-712 message for resale listings.

Invariants:
    - build_listing_typed_data is PURE and deterministic: same inputs, same dict
    - Message shape is {from, tokenId, price, deadline, nonce}; the marketplace
      contract verifies exactly this struct, so field names/types are fixed
    - Domain binds name, version, chainId and the marketplace as verifyingContract
"""

from marketsync.config import MarketplaceConfig
from marketsync.core.domain_types import Address, UINT256_MAX, normalize_address


PRIMARY_TYPE = "ListingAuthorization"

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

LISTING_AUTHORIZATION_TYPE = [
    {"name": "from", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "price", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
]


def build_domain(config: MarketplaceConfig) -> dict:
    return {
        "name": config.domain_name,
        "version": config.domain_version,
        "chainId": config.chain_id,
        "verifyingContract": normalize_address(config.marketplace_contract),
    }


def build_listing_message(
    seller: Address, token_id: int, price: int, deadline: int, nonce: int,
) -> dict:
    """Listing struct values. Raises ValueError on out-of-range integers."""
    for name, value in (
        ("tokenId", token_id), ("price", price),
        ("deadline", deadline), ("nonce", nonce),
    ):
        if not 0 <= value <= UINT256_MAX:
            raise ValueError(f"{name} out of uint256 range: {value}")
    return {
        "from": seller,
        "tokenId": token_id,
        "price": price,
        "deadline": deadline,
        "nonce": nonce,
    }


def build_listing_typed_data(
    config: MarketplaceConfig,
    seller: Address,
    token_id: int,
    price: int,
    deadline: int,
    nonce: int,
) -> dict:
    """Full EIP-712 payload (types, primaryType, domain, message)."""
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            PRIMARY_TYPE: LISTING_AUTHORIZATION_TYPE,
        },
        "primaryType": PRIMARY_TYPE,
        "domain": build_domain(config),
        "message": build_listing_message(seller, token_id, price, deadline, nonce),
    }
