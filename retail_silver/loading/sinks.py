"""
Validated Record Sinks

A sink accepts "replace all rows of entity E with these typed records" as
one call. Readers see either the previous complete table or the new one,
never a partial state. Every stored row is stamped with the load timestamp.
"""

from datetime import datetime, timezone
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Type

import structlog
from sqlalchemy import delete, insert
from sqlalchemy.exc import SQLAlchemyError

from retail_silver.database.connection import get_db
from retail_silver.database.models import SILVER_MODELS, Base
from retail_silver.exceptions import SinkWriteError

logger = structlog.get_logger(__name__)

TypedRecord = Dict[str, Any]

LOAD_TIMESTAMP_COLUMN = "dwh_create_date"


class ValidatedRecordSink(Protocol):
    """Target store for typed records"""

    async def replace_all(self, entity: str, records: Iterable[TypedRecord]) -> int:
        """
        Replace every row of ``entity`` with ``records``.

        Returns:
            Number of rows written

        Raises:
            SinkWriteError: The store rejected the replacement
        """
        ...


class InMemoryRecordSink:
    """
    Keeps typed tables in memory.

    The new table is built off to the side and swapped in, so a failed
    replacement leaves the previous table untouched.
    """

    def __init__(self):
        self.tables: Dict[str, List[TypedRecord]] = {}

    async def replace_all(self, entity: str, records: Iterable[TypedRecord]) -> int:
        loaded_at = datetime.now(timezone.utc)
        table = [{**record, LOAD_TIMESTAMP_COLUMN: loaded_at} for record in records]
        self.tables[entity] = table
        return len(table)

    def rows(self, entity: str, include_load_timestamp: bool = False) -> List[TypedRecord]:
        """Current rows of an entity's table"""
        rows = self.tables.get(entity, [])
        if include_load_timestamp:
            return [dict(row) for row in rows]
        return [
            {k: v for k, v in row.items() if k != LOAD_TIMESTAMP_COLUMN}
            for row in rows
        ]


def _chunked(records: Iterable[TypedRecord], size: int) -> Iterator[List[TypedRecord]]:
    iterator = iter(records)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class DatabaseRecordSink:
    """
    Writes typed records to the silver tables.

    Each replacement (DELETE followed by chunked INSERTs) runs in a single
    transaction. Constraint violations roll the whole entity back.
    """

    def __init__(
        self,
        models: Optional[Dict[str, Type[Base]]] = None,
        chunk_size: int = 1000,
    ):
        self.models = models or SILVER_MODELS
        self.chunk_size = chunk_size

    async def replace_all(self, entity: str, records: Iterable[TypedRecord]) -> int:
        model = self.models.get(entity)
        if model is None:
            raise SinkWriteError(entity, message=f"No silver table for '{entity}'")

        loaded_at = datetime.now(timezone.utc).replace(tzinfo=None)
        written = 0

        try:
            async with get_db() as db:
                await db.execute(delete(model))
                for chunk in _chunked(records, self.chunk_size):
                    rows = [{**record, LOAD_TIMESTAMP_COLUMN: loaded_at} for record in chunk]
                    await db.execute(insert(model), rows)
                    written += len(rows)
        except (SQLAlchemyError, RuntimeError) as e:
            raise SinkWriteError(entity, cause=e) from e

        logger.debug(
            "Replaced silver table",
            entity=entity,
            table=model.__tablename__,
            rows=written,
        )
        return written
