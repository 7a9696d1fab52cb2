"""Typed Data — canonical EIP-712 payload for listing authorizations."""

import pytest

from marketsync.core.typed_data import (
    PRIMARY_TYPE, build_domain, build_listing_typed_data,
)

from tests.signing import ALICE, CONFIG, MARKETPLACE_CONTRACT


def test_payload_shape():
    data = build_listing_typed_data(CONFIG, ALICE.address, 1, 100, 2_000, 0)
    assert data["primaryType"] == PRIMARY_TYPE
    assert set(data["types"]) == {"EIP712Domain", PRIMARY_TYPE}
    assert [f["name"] for f in data["types"][PRIMARY_TYPE]] == [
        "from", "tokenId", "price", "deadline", "nonce",
    ]
    assert data["message"] == {
        "from": ALICE.address, "tokenId": 1, "price": 100,
        "deadline": 2_000, "nonce": 0,
    }


def test_domain_binds_chain_and_marketplace():
    assert build_domain(CONFIG) == {
        "name": "CrownMarketplace",
        "version": "1",
        "chainId": 11155111,
        "verifyingContract": MARKETPLACE_CONTRACT,
    }


def test_builder_is_deterministic():
    args = (CONFIG, ALICE.address, 9, 5, 10, 1)
    assert build_listing_typed_data(*args) == build_listing_typed_data(*args)


@pytest.mark.parametrize("field", ["token_id", "price", "deadline", "nonce"])
def test_out_of_range_integers_rejected(field):
    values = {"token_id": 1, "price": 1, "deadline": 1, "nonce": 1}
    values[field] = 2**256
    with pytest.raises(ValueError):
        build_listing_typed_data(
            CONFIG, ALICE.address, values["token_id"], values["price"],
            values["deadline"], values["nonce"],
        )
