"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Network constants (RPC URL, chain id, contract addresses, EIP-712 domain)
      come from settings, never from module constants inside components
    - get_settings() is cached (lru_cache) — single instance per process
    - Components receive MarketplaceConfig / SyncConfig at construction

Design Decisions:
    - Frozen dataclasses handed to components instead of Settings: components
      stay constructible in tests without environment variables
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class MarketplaceConfig:
    """On-chain addresses and the EIP-712 domain of the marketplace."""
    chain_id: int
    nft_contract: str
    marketplace_contract: str
    domain_name: str = "CrownMarketplace"
    domain_version: str = "1"


@dataclass(frozen=True)
class SyncConfig:
    """Window size, backoff and pacing for ledger log fetching."""
    max_block_range: int = 450
    backoff_base_ms: int = 500
    max_attempts: int = 5
    window_pacing_ms: int = 100
    lookback_window: int = 50_000
    retry_on_timeout: bool = False

    def __post_init__(self):
        if self.max_block_range < 1:
            raise ValueError("max_block_range must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://marketsync:marketsync@db:5432/marketsync"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Ledger (JSON-RPC)
    rpc_url: str = "http://localhost:8545"
    rpc_timeout_seconds: float = 15.0
    chain_id: int = 11155111
    nft_contract_address: str = "0x602158126D46767D1e0B7eA91F246a1dbE06C71D"
    marketplace_contract_address: str = (
        "0x7836C0BD3A34Fc03415CCA04937f8c5E8c915FA3"
    )
    eip712_domain_name: str = "CrownMarketplace"
    eip712_domain_version: str = "1"

    # Sync
    sync_max_block_range: int = 450
    sync_backoff_base_ms: int = 500
    sync_max_attempts: int = 5
    sync_window_pacing_ms: int = 100
    sync_lookback_window: int = 50_000
    sync_retry_on_timeout: bool = False
    sync_interval_seconds: float = 60.0
    sync_start_block: int = 0

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def marketplace_config(self) -> MarketplaceConfig:
        return MarketplaceConfig(
            chain_id=self.chain_id,
            nft_contract=self.nft_contract_address,
            marketplace_contract=self.marketplace_contract_address,
            domain_name=self.eip712_domain_name,
            domain_version=self.eip712_domain_version,
        )

    def sync_config(self) -> SyncConfig:
        return SyncConfig(
            max_block_range=self.sync_max_block_range,
            backoff_base_ms=self.sync_backoff_base_ms,
            max_attempts=self.sync_max_attempts,
            window_pacing_ms=self.sync_window_pacing_ms,
            lookback_window=self.sync_lookback_window,
            retry_on_timeout=self.sync_retry_on_timeout,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
