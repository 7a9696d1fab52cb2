"""Service test fixtures — async DB, fake ledger, wired components, API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - The synchronizer and the API share that database through one session manager
    - get_db, ledger, config, clock and coordinator dependencies overridden
    - Signatures are real (eth-account keys from tests/signing.py)

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for these paths
    - read_listing/read_asset open a fresh session: the seeding session's
      identity map would otherwise return stale rows
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

import marketsync.api.dependencies as deps
import marketsync.infrastructure.database as db_module
from marketsync.config import SyncConfig
from marketsync.db.base import Base
from marketsync.infrastructure.chunked_executor import BackoffChunkExecutor, stream_filters
from marketsync.infrastructure.database import DatabaseSessionManager, get_db
from marketsync.infrastructure.signatures import Eip712Verifier
from marketsync.main import app
from marketsync.models import Asset, Listing
from marketsync.services.event_synchronizer import EventSynchronizer
from marketsync.services.listing_engine import ListingEngine
from marketsync.services.ownership_store import OwnershipStore
from marketsync.services.redemption import RedemptionCoordinator
from marketsync.services.sync_coordinator import SyncCoordinator

from tests.services.fake_ledger import FakeLedger
from tests.signing import CONFIG, NFT_CONTRACT, NOW


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
async def test_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def session_manager(test_engine) -> DatabaseSessionManager:
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(
        max_block_range=10, backoff_base_ms=1, max_attempts=3,
        window_pacing_ms=0, lookback_window=1_000,
    )


@pytest.fixture
def synchronizer(session_manager, ledger, sync_config) -> EventSynchronizer:
    executor = BackoffChunkExecutor(
        ledger, stream_filters(CONFIG), sync_config, sleep=_no_sleep,
    )
    return EventSynchronizer(session_manager, ledger, executor, CONFIG, sync_config)


@pytest.fixture
def coordinator(synchronizer) -> SyncCoordinator:
    return SyncCoordinator(synchronizer)


@pytest.fixture
def listing_engine(test_db, ledger) -> ListingEngine:
    return ListingEngine(test_db, ledger, Eip712Verifier(), CONFIG, clock=lambda: NOW)


@pytest.fixture
def redemption(test_db, ledger) -> RedemptionCoordinator:
    return RedemptionCoordinator(test_db, ledger, Eip712Verifier(), CONFIG, clock=lambda: NOW)


@pytest.fixture
async def client(test_session_factory, session_manager, ledger, coordinator):
    """FastAPI test client wired to the test DB and the fake ledger."""
    async def override_get_db():
        async with session_manager.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_ledger] = lambda: ledger
    app.dependency_overrides[deps.get_marketplace_config] = lambda: CONFIG
    app.dependency_overrides[deps.get_clock] = lambda: (lambda: NOW)
    app.dependency_overrides[deps.get_sync_coordinator] = lambda: coordinator

    original_manager = db_module.db_manager
    db_module.db_manager = session_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def read_listing(test_session_factory):
    async def _read(seller: str, token_id: int, contract: str = NFT_CONTRACT) -> Listing | None:
        async with test_session_factory() as session:
            result = await session.execute(
                select(Listing).where(
                    Listing.contract_address == contract,
                    Listing.token_id == str(token_id),
                    Listing.seller_address == seller,
                ),
            )
            return result.scalar_one_or_none()
    return _read


@pytest.fixture
def read_owner(test_session_factory):
    async def _read(token_id: int, contract: str = NFT_CONTRACT) -> str | None:
        async with test_session_factory() as session:
            return await OwnershipStore(session).owner_of(contract, token_id)
    return _read


@pytest.fixture
def read_asset(test_session_factory):
    async def _read(token_id: int, contract: str = NFT_CONTRACT) -> Asset | None:
        async with test_session_factory() as session:
            result = await session.execute(
                select(Asset).where(
                    Asset.contract_address == contract,
                    Asset.token_id == str(token_id),
                ),
            )
            return result.scalar_one_or_none()
    return _read
