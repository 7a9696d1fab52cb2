"""Owner ORM — an address observed as recipient or listing signer.

Invariants:
    - address is unique and checksummed (normalize_address at every ingress)
    - Rows are never deleted
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from marketsync.db.base import Base


class Owner(Base):
    """Ledger account that owns (or owned) assets."""
    __tablename__ = "owners"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(42), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
