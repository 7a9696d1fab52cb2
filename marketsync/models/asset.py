"""Asset ORM — one NFT (contract, tokenId) and its current owner.

Invariants:
    - (contract_address, token_id) unique
    - owner_id reflects the event at (last_block_number, last_log_index),
      the highest ledger position applied so far
    - Written only by the event synchronizer

Design Decisions:
    - token_id stored as decimal text: uint256 exceeds every SQL integer type
    - Ledger position stored on the row: makes event application idempotent
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketsync.core.domain_types import LedgerPosition
from marketsync.db.base import Base
from marketsync.models.owner import Owner


class Asset(Base):
    """NFT tracked by the synchronizer."""
    __tablename__ = "assets"
    __table_args__ = (
        UniqueConstraint("contract_address", "token_id", name="uq_assets_contract_token"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[str] = mapped_column(String(78), nullable=False)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("owners.id"), nullable=False, index=True,
    )
    metadata_uri: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_log_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner: Mapped[Owner] = relationship(
        Owner, lazy="joined",
    )

    @property
    def position(self) -> LedgerPosition | None:
        if self.last_block_number is None or self.last_log_index is None:
            return None
        return LedgerPosition(self.last_block_number, self.last_log_index)
