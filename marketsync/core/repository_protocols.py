"""Boundary Protocols — contracts between core/services and the outside world.

Invariants:
    - Services depend on these Protocols, never on httpx or eth-account directly
    - All ledger reads are async (network IO); signature recovery is sync (CPU only)
    - Implementations provided by infrastructure via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping lets tests pass a plain FakeLedger
"""

from typing import Protocol

from marketsync.core.domain_types import Address


class LedgerReader(Protocol):
    """Typed read access to the ledger — implemented by JsonRpcLedgerClient."""
    async def latest_block_number(self) -> int: ...
    async def get_logs(
        self, address: str, topics: list[str | None],
        from_block: int, to_block: int,
    ) -> list[dict]: ...
    async def owner_of(self, contract: str, token_id: int) -> Address: ...
    async def nonce_of(self, contract: str, address: str) -> int: ...
    async def get_transaction_receipt(self, tx_hash: str) -> dict | None: ...


class SignatureVerifier(Protocol):
    """Recover the signer of an EIP-712 payload — implemented by Eip712Verifier."""
    def recover(self, typed_data: dict, signature: str) -> Address: ...
