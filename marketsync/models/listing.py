"""Listing ORM — a seller's signed resale authorization.

Invariants:
    - (contract_address, token_id, seller_address) unique: one row, hence at
      most one active listing, per asset and seller
    - A relist deletes the old row and inserts a new one (never resurrected)
    - is_active flips to False only on observed transfer-away or nonce advance;
      deadline expiry is evaluated lazily at read time
    - signer_address == seller_address for direct signatures, the delegated key otherwise

Design Decisions:
    - price stored as decimal text (uint256); deadline/nonce fit BigInteger
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketsync.db.base import Base


class Listing(Base):
    """Resale offer backed by an EIP-712 signature."""
    __tablename__ = "listings"
    __table_args__ = (
        UniqueConstraint(
            "contract_address", "token_id", "seller_address",
            name="uq_listings_asset_seller",
        ),
        Index("ix_listings_asset_active", "contract_address", "token_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    contract_address: Mapped[str] = mapped_column(String(42), nullable=False)
    token_id: Mapped[str] = mapped_column(String(78), nullable=False)
    seller_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    price: Mapped[str] = mapped_column(String(78), nullable=False)
    deadline: Mapped[int] = mapped_column(BigInteger, nullable=False)
    nonce: Mapped[int] = mapped_column(BigInteger, nullable=False)
    signature: Mapped[str] = mapped_column(Text, nullable=False)
    signer_address: Mapped[str] = mapped_column(String(42), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
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
