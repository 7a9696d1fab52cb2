"""SyncCursor ORM — highest block fully reconciled, per event stream.

Invariants:
    - One row per EventStream value; a missing row means "never synced"
    - block_number only moves forward, except through CursorRepository.reset
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from marketsync.db.base import Base


class SyncCursor(Base):
    __tablename__ = "sync_cursors"

    stream: Mapped[str] = mapped_column(String(20), primary_key=True)
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
