"""Record store client: filtered, sorted, paginated reads over named collections."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Table, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from homecare_metrics.core.exceptions import SourceFetchError
from homecare_metrics.core.logging import get_logger
from homecare_metrics.db.models import Base

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecordQuery:
    """
    Immutable read request against one collection.

    Every builder method returns a new query, so partially built queries
    can be shared between fetches.
    """
    collection: str
    columns: Tuple[str, ...] = ()
    equals: Dict[str, Any] = field(default_factory=dict)
    within: Dict[str, Tuple[Any, ...]] = field(default_factory=dict)
    lower_bounds: Dict[str, Any] = field(default_factory=dict)
    upper_bounds: Dict[str, Any] = field(default_factory=dict)
    order_by: Optional[str] = None
    descending: bool = False
    offset: int = 0
    limit: Optional[int] = None
    with_total: bool = False
    head: bool = False

    def select(self, *columns: str) -> "RecordQuery":
        return replace(self, columns=tuple(columns))

    def where(self, **conditions: Any) -> "RecordQuery":
        return replace(self, equals={**self.equals, **conditions})

    def where_in(self, column: str, values) -> "RecordQuery":
        return replace(self, within={**self.within, column: tuple(values)})

    def gte(self, column: str, value: Any) -> "RecordQuery":
        return replace(self, lower_bounds={**self.lower_bounds, column: value})

    def lte(self, column: str, value: Any) -> "RecordQuery":
        return replace(self, upper_bounds={**self.upper_bounds, column: value})

    def order(self, column: str, descending: bool = False) -> "RecordQuery":
        return replace(self, order_by=column, descending=descending)

    def paginate(self, page: int, page_size: int) -> "RecordQuery":
        """Restrict to the 1-based ``page`` of ``page_size`` rows."""
        return replace(self, offset=(page - 1) * page_size, limit=page_size)

    def with_count(self) -> "RecordQuery":
        """Also return the exact number of matching rows, ignoring pagination."""
        return replace(self, with_total=True)

    def count_only(self) -> "RecordQuery":
        """Return only the exact count, no rows."""
        return replace(self, with_total=True, head=True)


@dataclass(frozen=True)
class RecordPage:
    """Rows returned for a query, plus the exact total when requested."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    total: Optional[int] = None


class RecordStore(ABC):
    """Read-only access to the hosted record collections."""

    @abstractmethod
    async def fetch(self, query: RecordQuery) -> RecordPage:
        """Run ``query``; raise ``SourceFetchError`` if the store rejects it."""

    async def count(self, query: RecordQuery) -> int:
        page = await self.fetch(query.count_only())
        return page.total or 0


class SQLRecordStore(RecordStore):
    """RecordStore backed by SQLAlchemy, one session per fetch."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise SourceFetchError(name, "unknown collection")
        return table

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise SourceFetchError(table.name, f"unknown column '{name}'")
        return table.c[name]

    def _conditions(self, table: Table, query: RecordQuery) -> list:
        conditions = []
        for name, value in query.equals.items():
            column = self._column(table, name)
            conditions.append(column.is_(None) if value is None else column == value)
        for name, values in query.within.items():
            conditions.append(self._column(table, name).in_(values))
        for name, value in query.lower_bounds.items():
            conditions.append(self._column(table, name) >= value)
        for name, value in query.upper_bounds.items():
            conditions.append(self._column(table, name) <= value)
        return conditions

    async def fetch(self, query: RecordQuery) -> RecordPage:
        table = self._table(query.collection)
        conditions = self._conditions(table, query)

        try:
            async with self.session_factory() as session:
                total = None
                if query.with_total:
                    count_stmt = select(func.count()).select_from(table).where(*conditions)
                    total = (await session.execute(count_stmt)).scalar_one()
                if query.head:
                    return RecordPage(rows=[], total=total)

                columns = [self._column(table, name) for name in query.columns] or [table]
                stmt = select(*columns).where(*conditions)
                if query.order_by:
                    order_column = self._column(table, query.order_by)
                    stmt = stmt.order_by(order_column.desc() if query.descending else order_column.asc())
                if query.offset:
                    stmt = stmt.offset(query.offset)
                if query.limit is not None:
                    stmt = stmt.limit(query.limit)

                result = await session.execute(stmt)
                rows = [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error("Record store read failed", collection=query.collection, error=str(e))
            raise SourceFetchError(query.collection, str(e)) from e

        return RecordPage(rows=rows, total=total)
