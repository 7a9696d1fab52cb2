"""JSON-RPC Ledger Client — request shape and error mapping via httpx.MockTransport."""

import json

import httpx
import pytest
from eth_abi import encode as abi_encode
from eth_utils import to_hex

from marketsync.core.domain_types import ZERO_ADDRESS
from marketsync.core.errors import LedgerError, LedgerRateLimitError, LedgerTimeoutError
from marketsync.infrastructure.ledger_client import (
    NONCES_SELECTOR, OWNER_OF_SELECTOR, JsonRpcLedgerClient,
)

from tests.signing import ALICE, NFT_CONTRACT, MARKETPLACE_CONTRACT


def _client(handler) -> tuple[JsonRpcLedgerClient, list[dict]]:
    requests = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(recording))
    return JsonRpcLedgerClient("http://rpc.test", http_client=http), requests


def _result(value):
    return lambda request: httpx.Response(
        200, json={"jsonrpc": "2.0", "id": 1, "result": value},
    )


def _rpc_error(code, message):
    return lambda request: httpx.Response(
        200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}},
    )


async def test_latest_block_number_parses_hex():
    client, requests = _client(_result("0x1b4"))
    assert await client.latest_block_number() == 436
    assert requests[0]["method"] == "eth_blockNumber"


async def test_null_block_number_is_ledger_error():
    client, _ = _client(_result(None))
    with pytest.raises(LedgerError):
        await client.latest_block_number()


async def test_get_logs_sends_hex_block_range():
    client, requests = _client(_result([{"blockNumber": "0x1"}]))
    logs = await client.get_logs(NFT_CONTRACT, ["0xabc"], 100, 549)
    assert logs == [{"blockNumber": "0x1"}]
    params = requests[0]["params"][0]
    assert params["fromBlock"] == "0x64"
    assert params["toBlock"] == "0x225"
    assert params["address"] == NFT_CONTRACT


async def test_http_429_is_rate_limit_with_retry_after():
    client, _ = _client(lambda r: httpx.Response(429, headers={"retry-after": "2"}))
    with pytest.raises(LedgerRateLimitError) as exc:
        await client.latest_block_number()
    assert exc.value.context.retry_after_ms == 2000
    assert exc.value.code == "LEDGER_RATE_LIMITED"


@pytest.mark.parametrize("code,message", [
    (-32005, "query limit exceeded"),
    (-32000, "Too Many Requests"),
])
async def test_rpc_throttling_errors_are_rate_limits(code, message):
    client, _ = _client(_rpc_error(code, message))
    with pytest.raises(LedgerRateLimitError):
        await client.get_logs(NFT_CONTRACT, ["0xabc"], 0, 1)


async def test_other_rpc_errors_are_plain_ledger_errors():
    client, _ = _client(_rpc_error(-32602, "invalid params"))
    with pytest.raises(LedgerError) as exc:
        await client.get_logs(NFT_CONTRACT, ["0xabc"], 0, 1)
    assert not isinstance(exc.value, LedgerRateLimitError)
    assert exc.value.http_status == 503


async def test_server_error_status_is_ledger_error():
    client, _ = _client(lambda r: httpx.Response(502, text="bad gateway"))
    with pytest.raises(LedgerError) as exc:
        await client.latest_block_number()
    assert exc.value.code == "LEDGER_UNAVAILABLE"


async def test_timeout_maps_to_ledger_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client, _ = _client(handler)
    with pytest.raises(LedgerTimeoutError):
        await client.latest_block_number()


async def test_owner_of_encodes_call_and_decodes_address():
    client, requests = _client(_result(to_hex(abi_encode(["address"], [ALICE.address]))))
    assert await client.owner_of(NFT_CONTRACT, 5) == ALICE.address
    call = requests[0]["params"][0]
    assert call["to"] == NFT_CONTRACT
    assert call["data"] == to_hex(OWNER_OF_SELECTOR + abi_encode(["uint256"], [5]))


async def test_owner_of_revert_reads_as_zero_address():
    client, _ = _client(_rpc_error(3, "execution reverted: ERC721: invalid token ID"))
    assert await client.owner_of(NFT_CONTRACT, 999) == ZERO_ADDRESS


async def test_nonce_of_decodes_uint():
    client, requests = _client(_result(to_hex(abi_encode(["uint256"], [7]))))
    assert await client.nonce_of(MARKETPLACE_CONTRACT, ALICE.address) == 7
    assert requests[0]["params"][0]["data"].startswith(to_hex(NONCES_SELECTOR))


async def test_transaction_receipt_passthrough():
    client, requests = _client(_result(None))
    assert await client.get_transaction_receipt("0x" + "ab" * 32) is None
    assert requests[0]["method"] == "eth_getTransactionReceipt"


def test_empty_rpc_url_rejected():
    with pytest.raises(ValueError):
        JsonRpcLedgerClient("  ")
