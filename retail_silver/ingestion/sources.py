"""
Raw Record Sources

A raw record source supplies, per entity, the bronze rows as column-name
mappings with untyped (text) values. File discovery, delimiters, encodings
and header handling happen upstream when the bronze tables are filled.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import structlog
from sqlalchemy import Table, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from retail_silver.database.connection import get_db
from retail_silver.database.models import BRONZE_TABLES
from retail_silver.exceptions import SourceUnavailableError

logger = structlog.get_logger(__name__)

RawRecord = Mapping[str, Any]


class RawRecordSource(Protocol):
    """Supplies the raw rows for one entity"""

    async def fetch(self, entity: str) -> List[RawRecord]:
        """
        Return every raw row for ``entity``.

        Raises:
            SourceUnavailableError: The rows cannot be read
        """
        ...


class InMemoryRecordSource:
    """
    Raw rows held in memory, keyed by entity name.

    Example:
        source = InMemoryRecordSource({"sales": [{"sale_id": "1", ...}]})
        rows = await source.fetch("sales")
    """

    def __init__(self, records: Optional[Dict[str, Iterable[RawRecord]]] = None):
        self._records: Dict[str, List[RawRecord]] = {}
        for entity, rows in (records or {}).items():
            self.add(entity, rows)

    def add(self, entity: str, rows: Iterable[RawRecord]) -> None:
        """Register (or replace) the raw rows of an entity"""
        self._records[entity] = list(rows)

    def remove(self, entity: str) -> None:
        self._records.pop(entity, None)

    async def fetch(self, entity: str) -> List[RawRecord]:
        if entity not in self._records:
            raise SourceUnavailableError(entity, message=f"No raw records registered for '{entity}'")
        return list(self._records[entity])


class StagingTableSource:
    """
    Reads raw rows from the bronze staging tables.

    Rows come back in staging order (by surrogate row id).
    """

    def __init__(self, tables: Optional[Dict[str, Table]] = None):
        self.tables = tables or BRONZE_TABLES

    def _table(self, entity: str) -> Table:
        table = self.tables.get(entity)
        if table is None:
            raise SourceUnavailableError(entity, message=f"No staging table for '{entity}'")
        return table

    async def fetch(self, entity: str) -> List[RawRecord]:
        table = self._table(entity)

        try:
            async with get_db() as db:
                result = await db.execute(select(table).order_by(table.c.row_id))
                rows = [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, RuntimeError) as e:
            raise SourceUnavailableError(entity, cause=e) from e

        logger.debug("Fetched staging rows", entity=entity, table=table.name, rows=len(rows))
        return rows

    async def stage(self, entity: str, rows: Iterable[RawRecord]) -> int:
        """
        Replace a staging table's contents with ``rows``.

        Values are stored as text, mirroring a bulk copy from the source files.
        """
        table = self._table(entity)
        columns = [c.name for c in table.columns if c.name != "row_id"]
        records = [
            {c: None if row.get(c) is None else str(row.get(c)) for c in columns}
            for row in rows
        ]

        async with get_db() as db:
            await db.execute(delete(table))
            if records:
                await db.execute(insert(table), records)

        logger.info("Staged raw rows", entity=entity, table=table.name, rows=len(records))
        return len(records)
