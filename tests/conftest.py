"""Root conftest — shared test configuration."""

import os

# Never reach a real database, RPC endpoint or background sync from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("RPC_URL", "http://ledger.invalid")
os.environ.setdefault("SYNC_INTERVAL_SECONDS", "0")
