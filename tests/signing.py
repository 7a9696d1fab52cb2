"""Test wallets and EIP-712 signing helpers (real eth-account keys)."""

from eth_account import Account
from eth_account.messages import encode_typed_data

from marketsync.config import MarketplaceConfig
from marketsync.core.domain_types import normalize_address
from marketsync.core.typed_data import build_listing_typed_data

NFT_CONTRACT = normalize_address("0x" + "a1" * 20)
MARKETPLACE_CONTRACT = normalize_address("0x" + "b2" * 20)

CONFIG = MarketplaceConfig(
    chain_id=11155111,
    nft_contract=NFT_CONTRACT,
    marketplace_contract=MARKETPLACE_CONTRACT,
)

ALICE = Account.from_key("0x" + "11" * 32)
BOB = Account.from_key("0x" + "22" * 32)
CAROL = Account.from_key("0x" + "33" * 32)
# smart-contract wallet address with no key of its own
SAFE_WALLET = normalize_address("0x" + "5a" * 20)

NOW = 1_900_000_000


def sign_typed_data(account, typed_data: dict) -> str:
    signed = Account.sign_message(encode_typed_data(full_message=typed_data), account.key)
    return "0x" + bytes(signed.signature).hex()


def sign_listing(
    account,
    token_id: int,
    price: int,
    deadline: int,
    nonce: int,
    seller: str | None = None,
    config: MarketplaceConfig = CONFIG,
) -> str:
    """Signature by `account` over a listing for `seller` (defaults to the signer)."""
    typed_data = build_listing_typed_data(
        config, normalize_address(seller or account.address),
        token_id, price, deadline, nonce,
    )
    return sign_typed_data(account, typed_data)
