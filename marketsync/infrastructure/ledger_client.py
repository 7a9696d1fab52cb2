"""JSON-RPC Ledger Client — typed reads against an Ethereum-compatible RPC endpoint.

Invariants:
    - Throttling (HTTP 429, JSON-RPC -32005, "limit exceeded" messages) → LedgerRateLimitError
    - httpx timeouts → LedgerTimeoutError; every other failure → LedgerError
    - No retries here: the chunked executor owns retry/backoff policy
    - Addresses returned checksummed; quantities returned as int

Design Decisions:
    - httpx.AsyncClient injected or owned: tests pass an httpx.MockTransport client
    - ABI encoding via eth-abi for the two point reads (ownerOf, nonces)
"""

import itertools
import logging

import httpx
from eth_abi import decode as abi_decode, encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, function_signature_to_4byte_selector, to_hex

from marketsync.core.domain_types import Address, ZERO_ADDRESS, normalize_address
from marketsync.core.errors import (
    LedgerError, LedgerRateLimitError, LedgerTimeoutError,
)

logger = logging.getLogger(__name__)

# Infura/Alchemy style "limit exceeded" error code
_RATE_LIMIT_RPC_CODES = frozenset({-32005, 429})
_RATE_LIMIT_MARKERS = ("limit exceeded", "too many requests", "rate limit")
_REVERT_MARKERS = ("execution reverted", "revert")
_REVERTED = "LEDGER_CALL_REVERTED"

OWNER_OF_SELECTOR = function_signature_to_4byte_selector("ownerOf(uint256)")
NONCES_SELECTOR = function_signature_to_4byte_selector("nonces(address)")


def _is_rate_limit(error: dict) -> bool:
    if error.get("code") in _RATE_LIMIT_RPC_CODES:
        return True
    message = str(error.get("message", "")).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def _is_revert(error: dict) -> bool:
    if error.get("code") == 3:
        return True
    message = str(error.get("message", "")).lower()
    return any(marker in message for marker in _REVERT_MARKERS)


def _retry_after_ms(response: httpx.Response) -> int | None:
    val = response.headers.get("retry-after")
    if val and val.isdigit():
        return int(val) * 1000
    return None


class JsonRpcLedgerClient:
    """Ledger reads over JSON-RPC with typed error mapping."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._request_ids = itertools.count(1)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: list):
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(self._rpc_url, json=body)
        except httpx.TimeoutException:
            raise LedgerTimeoutError(method)
        except httpx.HTTPError as e:
            raise LedgerError(f"transport error: {e}", method)

        if response.status_code == 429:
            raise LedgerRateLimitError(
                "HTTP 429 Too Many Requests", method,
                retry_after_ms=_retry_after_ms(response),
            )
        if response.status_code >= 400:
            raise LedgerError(f"HTTP {response.status_code}", method)

        try:
            payload = response.json()
        except ValueError:
            raise LedgerError("response is not valid JSON", method)
        if not isinstance(payload, dict):
            raise LedgerError("unexpected JSON-RPC envelope", method)

        error = payload.get("error")
        if error:
            message = f"RPC error {error.get('code')}: {error.get('message')}"
            if _is_rate_limit(error):
                raise LedgerRateLimitError(message, method)
            if _is_revert(error):
                raise LedgerError(message, method, code=_REVERTED)
            raise LedgerError(message, method)
        return payload.get("result")

    async def _eth_call(self, contract: str, data: bytes) -> bytes:
        result = await self._call(
            "eth_call", [{"to": contract, "data": to_hex(data)}, "latest"],
        )
        if not isinstance(result, str):
            raise LedgerError("eth_call returned no data", "eth_call")
        return decode_hex(result)

    async def latest_block_number(self) -> int:
        result = await self._call("eth_blockNumber", [])
        try:
            return int(result, 16)
        except (TypeError, ValueError):
            raise LedgerError(f"invalid block number: {result!r}", "eth_blockNumber")

    async def get_logs(
        self,
        address: str,
        topics: list[str | None],
        from_block: int,
        to_block: int,
    ) -> list[dict]:
        result = await self._call("eth_getLogs", [{
            "address": address,
            "topics": topics,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }])
        return list(result or [])

    async def owner_of(self, contract: str, token_id: int) -> Address:
        """ERC-721 ownerOf. A revert (burned / never minted) reads as the zero address."""
        data = OWNER_OF_SELECTOR + abi_encode(["uint256"], [token_id])
        try:
            raw = await self._eth_call(contract, data)
        except LedgerError as e:
            if e.code == _REVERTED:
                logger.info(
                    f"ownerOf reverted for token {token_id}",
                    extra={"token_id": str(token_id), "contract_address": contract},
                )
                return ZERO_ADDRESS
            raise
        try:
            (owner,) = abi_decode(["address"], raw)
        except DecodingError as e:
            raise LedgerError(f"cannot decode ownerOf result: {e}", "eth_call")
        return normalize_address(owner)

    async def nonce_of(self, contract: str, address: str) -> int:
        """Marketplace nonces(address) — the seller's next valid authorization nonce."""
        data = NONCES_SELECTOR + abi_encode(["address"], [address])
        raw = await self._eth_call(contract, data)
        try:
            (nonce,) = abi_decode(["uint256"], raw)
        except DecodingError as e:
            raise LedgerError(f"cannot decode nonces result: {e}", "eth_call")
        return nonce

    async def get_transaction_receipt(self, tx_hash: str) -> dict | None:
        return await self._call("eth_getTransactionReceipt", [tx_hash])
