"""Dependency Wiring — process-wide ledger client, verifier and sync coordinator.

Invariants:
    - init_services() runs once in the lifespan; handlers reach components only
      through the get_* dependencies below (tests override them)
    - Components receive MarketplaceConfig / SyncConfig, never Settings

Design Decisions:
    - Module-level singletons like database.db_manager: single-process
      deployment, one ledger connection pool, one sync lock
"""

import time
from collections.abc import Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.config import MarketplaceConfig, Settings, get_settings
from marketsync.core.repository_protocols import LedgerReader, SignatureVerifier
from marketsync.infrastructure.chunked_executor import BackoffChunkExecutor, stream_filters
from marketsync.infrastructure.database import DatabaseSessionManager, get_db
from marketsync.infrastructure.ledger_client import JsonRpcLedgerClient
from marketsync.infrastructure.signatures import Eip712Verifier
from marketsync.services.event_synchronizer import EventSynchronizer
from marketsync.services.listing_engine import ListingEngine
from marketsync.services.redemption import RedemptionCoordinator
from marketsync.services.sync_coordinator import SyncCoordinator

# Singletons (initialized on startup)
ledger_client: JsonRpcLedgerClient | None = None
sync_coordinator: SyncCoordinator | None = None
_verifier = Eip712Verifier()


def init_services(
    settings: Settings, sessions: DatabaseSessionManager,
) -> SyncCoordinator:
    global ledger_client, sync_coordinator
    marketplace = settings.marketplace_config()
    sync = settings.sync_config()
    ledger_client = JsonRpcLedgerClient(settings.rpc_url, settings.rpc_timeout_seconds)
    executor = BackoffChunkExecutor(ledger_client, stream_filters(marketplace), sync)
    synchronizer = EventSynchronizer(
        sessions, ledger_client, executor, marketplace, sync,
        start_block=settings.sync_start_block,
    )
    sync_coordinator = SyncCoordinator(synchronizer)
    return sync_coordinator


async def shutdown_services() -> None:
    global ledger_client, sync_coordinator
    if sync_coordinator:
        sync_coordinator.stop()
    if ledger_client:
        await ledger_client.aclose()
    ledger_client = None
    sync_coordinator = None


def get_ledger() -> LedgerReader:
    if not ledger_client:
        raise RuntimeError("Ledger client not initialized")
    return ledger_client


def get_verifier() -> SignatureVerifier:
    return _verifier


def get_marketplace_config() -> MarketplaceConfig:
    return get_settings().marketplace_config()


def get_clock() -> Callable[[], float]:
    return time.time


def get_sync_coordinator() -> SyncCoordinator:
    if not sync_coordinator:
        raise RuntimeError("Sync coordinator not initialized")
    return sync_coordinator


async def get_listing_engine(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerReader = Depends(get_ledger),
    verifier: SignatureVerifier = Depends(get_verifier),
    config: MarketplaceConfig = Depends(get_marketplace_config),
    clock: Callable[[], float] = Depends(get_clock),
) -> ListingEngine:
    return ListingEngine(db, ledger, verifier, config, clock)


async def get_redemption_coordinator(
    db: AsyncSession = Depends(get_db),
    ledger: LedgerReader = Depends(get_ledger),
    verifier: SignatureVerifier = Depends(get_verifier),
    config: MarketplaceConfig = Depends(get_marketplace_config),
    clock: Callable[[], float] = Depends(get_clock),
) -> RedemptionCoordinator:
    return RedemptionCoordinator(db, ledger, verifier, config, clock)
