"""Sync Routes — trigger passes, inspect cursors, operator rollback.

Invariants:
    - POST /sync and POST /sync/transactions run under the coordinator lock,
      never beside the periodic job
    - Ledger failure → 503; cursor left at the last committed window
    - Reset is an operator action and is logged at WARNING
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.api.dependencies import get_sync_coordinator
from marketsync.core.domain_types import EventStream
from marketsync.infrastructure.database import get_db
from marketsync.schemas.sync import (
    SyncResetRequest, SyncResultResponse, SyncStatusResponse, TransactionSyncRequest,
)
from marketsync.services.cursor_repository import CursorRepository
from marketsync.services.event_synchronizer import SyncResult
from marketsync.services.ownership_store import OwnershipStore
from marketsync.services.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


def to_response(result: SyncResult) -> SyncResultResponse:
    return SyncResultResponse(
        transfer=result.applied[EventStream.TRANSFER],
        purchase=result.applied[EventStream.PURCHASE],
        total=result.total,
        skipped=result.skipped,
        windows=result.windows,
        deactivated_listings=result.deactivated_listings,
        from_block=result.from_block,
        to_block=result.to_block,
        cursor=result.new_cursor,
        aborted=result.aborted,
    )


@router.post("", response_model=SyncResultResponse)
async def run_sync(
    wait: bool = Query(True),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Run one pass now; wait=false returns 409 if a pass is already running."""
    result = await coordinator.run_pass(wait=wait)
    return to_response(result)


@router.post("/transactions", response_model=SyncResultResponse)
async def sync_transaction(
    body: TransactionSyncRequest,
    wait: bool = Query(True),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    """Apply one transaction's ownership events ahead of the next pass."""
    result = await coordinator.apply_receipt(body.tx_hash, wait=wait)
    return to_response(result)


async def _status(db: AsyncSession, coordinator: SyncCoordinator) -> SyncStatusResponse:
    cursors = await CursorRepository(db).get_all()
    return SyncStatusResponse(
        cursors={stream.value: block for stream, block in cursors.items()},
        running=coordinator.running,
        last_error=coordinator.last_error,
        counts=await OwnershipStore(db).counts(),
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    db: AsyncSession = Depends(get_db),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    return await _status(db, coordinator)


@router.post("/reset", response_model=SyncStatusResponse)
async def reset_sync(
    body: SyncResetRequest,
    db: AsyncSession = Depends(get_db),
    coordinator: SyncCoordinator = Depends(get_sync_coordinator),
):
    await coordinator.reset_cursor(body.block)
    return await _status(db, coordinator)
