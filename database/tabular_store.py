"""
Tabular store: named tables of key-value rows.

This is the persistence contract every repository is written against. Rows
are plain dicts whose values are cell-friendly (strings, numbers, booleans,
None). Two implementations:
- InMemoryTabularStore: process-local, used in tests and when no database
  is configured
- SQLAlchemyTabularStore: async SQLAlchemy over the sheet_rows table
"""

import copy
import logging
from typing import Any, Dict, List, Protocol, runtime_checkable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import SheetRow

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@runtime_checkable
class TabularStore(Protocol):
    async def read(self, table: str) -> List[Row]:
        """Return all rows of a table in order (empty if the table does not exist)."""
        ...

    async def write(self, table: str, rows: List[Row]) -> None:
        """Replace the full contents of a table."""
        ...

    async def append(self, table: str, rows: List[Row]) -> None:
        """Append rows to the end of a table."""
        ...


class InMemoryTabularStore:
    """Tabular store held in process memory. Rows are copied in and out."""

    def __init__(self):
        self._tables: Dict[str, List[Row]] = {}

    async def read(self, table: str) -> List[Row]:
        return copy.deepcopy(self._tables.get(table, []))

    async def write(self, table: str, rows: List[Row]) -> None:
        self._tables[table] = copy.deepcopy(list(rows))

    async def append(self, table: str, rows: List[Row]) -> None:
        self._tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))

    def tables(self) -> List[str]:
        return list(self._tables)


class SQLAlchemyTabularStore:
    """Tabular store persisted in a relational database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def read(self, table: str) -> List[Row]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(SheetRow.data)
                .where(SheetRow.sheet == table)
                .order_by(SheetRow.position.asc())
            )
            return [dict(data) for data in result.scalars().all()]

    async def write(self, table: str, rows: List[Row]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(SheetRow).where(SheetRow.sheet == table))
                session.add_all([
                    SheetRow(sheet=table, position=index, data=dict(row))
                    for index, row in enumerate(rows)
                ])
        logger.debug(f"Wrote {len(rows)} rows to {table}")

    async def append(self, table: str, rows: List[Row]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(func.max(SheetRow.position)).where(SheetRow.sheet == table)
                )
                last = result.scalar()
                start = 0 if last is None else last + 1
                session.add_all([
                    SheetRow(sheet=table, position=start + offset, data=dict(row))
                    for offset, row in enumerate(rows)
                ])
        logger.debug(f"Appended {len(rows)} rows to {table}")
