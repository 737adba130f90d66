"""
Scholarship Applications Repository

SQL implementation of the tabular store.

Design Principles:
- One session per operation, committed or rolled back before returning
- Row positions are assigned inside the same transaction that inserts them
- A unique (table_name, position) constraint rejects racing appends
- Append-only tables retry a rejected append at a fresh position
- Database errors surface as PersistenceError
"""

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .exceptions import PersistenceError
from .models import TabularRecord
from .store import Row, column_index

logger = logging.getLogger(__name__)

# Upper bound on position conflicts tolerated by a single append
APPEND_ATTEMPTS = 10


async def read_column(db: AsyncSession, table: str, column: str) -> list[str]:
    """Get every value in a column, ordered by position."""
    index = column_index(column)
    result = await db.execute(
        select(TabularRecord.cells)
        .where(TabularRecord.table_name == table)
        .order_by(TabularRecord.position)
    )
    values = []
    for cells in result.scalars().all():
        value = cells[index] if index < len(cells) else ""
        values.append("" if value is None else str(value))
    return values


async def get_last_position(db: AsyncSession, table: str) -> int:
    """Get the highest occupied position in a table (0 when empty)."""
    result = await db.execute(
        select(func.coalesce(func.max(TabularRecord.position), 0)).where(
            TabularRecord.table_name == table
        )
    )
    return int(result.scalar_one())


async def insert_rows(
    db: AsyncSession,
    table: str,
    start_position: int,
    rows: Sequence[Row],
) -> None:
    """Add rows at consecutive positions starting at `start_position`."""
    db.add_all(
        TabularRecord(table_name=table, position=start_position + offset, cells=list(row))
        for offset, row in enumerate(rows)
    )


class DatabaseTabularStore:
    """Tabular store backed by a SQL database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], name: str = "database"):
        self._session_maker = session_maker
        self.name = name

    async def read_column(self, table: str, column: str) -> list[str]:
        try:
            async with self._session_maker() as db:
                return await read_column(db, table, column)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {table}!{column}: {e}")
            raise PersistenceError(f"Database read of {table}!{column} failed: {e}") from e

    async def append(self, table: str, rows: Sequence[Row]) -> None:
        """
        Append rows to an append-only table (logs, files).

        Writers that are not serialized by the store lock can read the same
        last position. The one that loses the unique constraint re-reads
        the last position and inserts again.
        """
        if not rows:
            raise ValueError("append requires at least one row")

        for attempt in range(1, APPEND_ATTEMPTS + 1):
            try:
                start = await self._insert_after_last(table, rows)
            except IntegrityError as e:
                if attempt == APPEND_ATTEMPTS:
                    logger.error(f"Gave up appending to {table} after {attempt} conflicts")
                    raise PersistenceError(f"Database append to {table} failed: {e}") from e
                logger.warning(f"Position conflict appending to {table} (attempt {attempt})")
            except SQLAlchemyError as e:
                logger.error(f"Failed to append {len(rows)} row(s) to {table}: {e}")
                raise PersistenceError(f"Database append to {table} failed: {e}") from e
            else:
                logger.info(f"Appended {len(rows)} row(s) to {table} at position {start}")
                return

    async def append_after_last(self, table: str, rows: Sequence[Row]) -> int:
        if not rows:
            raise ValueError("append_after_last requires at least one row")

        try:
            start = await self._insert_after_last(table, rows)
        except SQLAlchemyError as e:
            logger.error(f"Failed to append {len(rows)} row(s) to {table}: {e}")
            raise PersistenceError(f"Database append to {table} failed: {e}") from e

        logger.info(f"Appended {len(rows)} row(s) to {table} at position {start}")
        return start

    async def _insert_after_last(self, table: str, rows: Sequence[Row]) -> int:
        async with self._session_maker() as db:
            start = await get_last_position(db, table) + 1
            await insert_rows(db, table, start, rows)
            await db.commit()
        return start
