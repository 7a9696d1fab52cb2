"""Cursor Repository — per-stream high-water mark of reconciled blocks.

Invariants:
    - advance() never moves a cursor backwards
    - reset() is the only way to roll a cursor back (operator action)
    - Never commits: cursor writes share the transaction of the window they cover
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketsync.core.domain_types import EventStream
from marketsync.models.sync_cursor import SyncCursor

logger = logging.getLogger(__name__)


class CursorRepository:

    def __init__(self, db: AsyncSession):
        self._db = db

    async def _row(self, stream: EventStream) -> SyncCursor | None:
        result = await self._db.execute(
            select(SyncCursor).where(SyncCursor.stream == stream.value),
        )
        return result.scalar_one_or_none()

    async def get(self, stream: EventStream) -> int | None:
        row = await self._row(stream)
        return row.block_number if row else None

    async def get_all(self) -> dict[EventStream, int | None]:
        return {stream: await self.get(stream) for stream in EventStream}

    async def advance(self, stream: EventStream, block_number: int) -> None:
        row = await self._row(stream)
        if row is None:
            self._db.add(SyncCursor(stream=stream.value, block_number=block_number))
        elif block_number > row.block_number:
            row.block_number = block_number
        await self._db.flush()

    async def reset(self, block_number: int) -> None:
        """Set every stream cursor to block_number, backwards included."""
        for stream in EventStream:
            row = await self._row(stream)
            if row is None:
                self._db.add(SyncCursor(stream=stream.value, block_number=block_number))
            else:
                row.block_number = block_number
        await self._db.flush()
        logger.warning(
            f"Sync cursors reset to block {block_number}",
            extra={"to_block": block_number},
        )
