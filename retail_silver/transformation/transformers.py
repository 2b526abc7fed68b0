"""
Entity Transformer

Applies an entity's rule table to raw records and yields typed records.
A column-wise map over a row-wise sequence: no sorting, joins, aggregation
or deduplication, so the output always has exactly one row per input row.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import polars as pl
import structlog

from .normalizers import DEFAULT_DATE_FLOOR, build_expression, to_text
from .rules import EntitySchema, get_entity_schema

logger = structlog.get_logger(__name__)

RawRecord = Mapping[str, Any]
TypedRecord = Dict[str, Any]


def _chunked(rows: Iterable[RawRecord], size: int) -> Iterator[List[RawRecord]]:
    iterator = iter(rows)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class EntityTransform:
    """
    Cleansing transform for one entity.

    Deterministic for a fixed processing date: the same raw rows always
    produce the same typed rows, in the same order.

    Example:
        transform = EntityTransform("sales", today=date(2024, 1, 31))
        typed = list(transform.transform(raw_rows))
    """

    def __init__(
        self,
        schema: Union[EntitySchema, str],
        today: Optional[date] = None,
        date_floor: date = DEFAULT_DATE_FLOOR,
        batch_size: int = 10000,
        max_workers: int = 1,
    ):
        self.schema = get_entity_schema(schema) if isinstance(schema, str) else schema
        self.today = today or date.today()
        self.date_floor = date_floor
        self.batch_size = batch_size
        self.max_workers = max_workers
        self._expressions = [
            build_expression(column, rule, self.today, self.date_floor)
            for column, rule in self.schema.fields.items()
        ]

    @property
    def name(self) -> str:
        return self.schema.name

    def raw_frame(self, rows: Iterable[RawRecord]) -> pl.DataFrame:
        """Build an all-text frame holding the entity's columns"""
        rows = list(rows)
        data = {
            column: [to_text(row.get(column)) for row in rows]
            for column in self.schema.columns
        }
        return pl.DataFrame(data, schema={column: pl.Utf8 for column in self.schema.columns})

    def transform_frame(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Normalize a raw frame column by column.

        Columns missing from ``raw`` are treated as all-null; extra columns
        are dropped.
        """
        missing = [c for c in self.schema.columns if c not in raw.columns]
        if missing:
            raw = raw.with_columns([pl.lit(None, dtype=pl.Utf8).alias(c) for c in missing])
        raw = raw.with_columns([pl.col(c).cast(pl.Utf8) for c in self.schema.columns])
        return raw.select(self._expressions)

    def _transform_chunk(self, chunk: List[RawRecord]) -> List[TypedRecord]:
        return self.transform_frame(self.raw_frame(chunk)).to_dicts()

    def transform(self, rows: Iterable[RawRecord]) -> Iterator[TypedRecord]:
        """
        Lazily transform raw records into typed records.

        Rows are processed in chunks of ``batch_size``. With ``max_workers``
        above one, chunks are normalized on a thread pool; output order still
        matches input order.
        """
        chunks = _chunked(rows, self.batch_size)

        if self.max_workers <= 1:
            for chunk in chunks:
                yield from self._transform_chunk(chunk)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for typed in pool.map(self._transform_chunk, chunks):
                yield from typed

    def transform_all(self, rows: Iterable[RawRecord]) -> pl.DataFrame:
        """Transform raw records into a single typed frame"""
        records = list(self.transform(rows))
        return pl.DataFrame(records, schema=self.schema.output_schema)


def transform_records(
    entity: str,
    rows: Iterable[RawRecord],
    today: Optional[date] = None,
) -> List[TypedRecord]:
    """
    Convenience function to cleanse one entity's raw records.

    Args:
        entity: Entity name, e.g. "sales"
        rows: Raw records as column-name mappings
        today: Processing date (defaults to the current date)

    Returns:
        Typed records, one per input row
    """
    return list(EntityTransform(entity, today=today).transform(rows))
