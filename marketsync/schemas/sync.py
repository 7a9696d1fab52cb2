"""Sync Schemas — pass results, cursor status, operator requests."""

from pydantic import Field

from marketsync.schemas.base import CamelModel


class SyncResultResponse(CamelModel):
    transfer: int
    purchase: int
    total: int
    skipped: int
    windows: int
    deactivated_listings: int
    from_block: int
    to_block: int
    cursor: int
    aborted: bool


class SyncStatusResponse(CamelModel):
    cursors: dict[str, int | None]
    running: bool
    last_error: str | None = None
    counts: dict[str, int]


class SyncResetRequest(CamelModel):
    """block = -1 re-syncs from genesis (bounded by the lookback window)."""
    block: int = Field(ge=-1)


class TransactionSyncRequest(CamelModel):
    tx_hash: str = Field(pattern=r"^0x[0-9a-fA-F]{64}$")
