"""
Silver Layer Pipeline Runner

Loads every entity from its raw source into its silver target, one entity
at a time, in a fixed order. For each entity:
1. Fetch the raw rows
2. Cleanse them with the entity's rule table
3. Optionally run the output quality checks
4. Replace the target table with the typed rows

A failure aborts the run. Entities loaded before the failure stay loaded;
the remaining entities are not attempted.
"""

import functools
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import polars as pl
import structlog

from retail_silver.config import PipelineSettings, get_settings
from retail_silver.database.connection import close_database, init_database
from retail_silver.exceptions import EntityLoadError, PipelineError, PipelineRunError
from retail_silver.ingestion.sources import RawRecordSource, StagingTableSource
from retail_silver.loading.sinks import DatabaseRecordSink, ValidatedRecordSink
from retail_silver.quality.validators import ValidationResult, create_entity_validator
from retail_silver.transformation.rules import ENTITY_ORDER, EntitySchema, get_entity_schema
from retail_silver.transformation.transformers import EntityTransform

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    """Pipeline run status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class EntityLoadResult:
    """Outcome of loading one entity"""
    entity: str
    table: str
    rows_read: int = 0
    rows_written: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    quality: Optional[ValidationResult] = None


@dataclass
class PipelineRunResult:
    """Summary of a pipeline run"""
    status: RunStatus
    started_at: datetime
    processing_date: date
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    entities: List[EntityLoadResult] = field(default_factory=list)
    failed_entity: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def completed_entities(self) -> List[str]:
        return [r.entity for r in self.entities]

    @property
    def durations(self) -> Dict[str, float]:
        """Per-entity load duration in seconds"""
        return {r.entity: r.duration_seconds for r in self.entities}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "processing_date": self.processing_date.isoformat(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "entities": [
                {
                    "entity": r.entity,
                    "table": r.table,
                    "rows_read": r.rows_read,
                    "rows_written": r.rows_written,
                    "duration_seconds": round(r.duration_seconds, 3),
                    "quality": r.quality.status.value if r.quality else None,
                }
                for r in self.entities
            ],
            "failed_entity": self.failed_entity,
            "error": self.error,
        }


def timed_load(func):
    """
    Wrap an entity load step with start/end/duration logging.

    The wrapped coroutine receives the EntitySchema and returns an
    EntityLoadResult; timing fields are filled in here.
    """
    @functools.wraps(func)
    async def wrapper(self, schema: EntitySchema) -> EntityLoadResult:
        log = logger.bind(entity=schema.name, table=schema.table)
        started_at = _utcnow()
        start = time.perf_counter()
        log.info("entity_load_started", started_at=started_at.isoformat())

        try:
            result = await func(self, schema)
        except Exception as e:
            log.error(
                "entity_load_failed",
                duration_seconds=round(time.perf_counter() - start, 3),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        result.started_at = started_at
        result.completed_at = _utcnow()
        result.duration_seconds = time.perf_counter() - start
        log.info(
            "entity_load_completed",
            rows_read=result.rows_read,
            rows_written=result.rows_written,
            completed_at=result.completed_at.isoformat(),
            duration_seconds=round(result.duration_seconds, 3),
        )
        return result

    return wrapper


class PipelineRunner:
    """
    Sequential full-replace loader for the silver layer.

    Example:
        runner = PipelineRunner(source, sink)
        result = await runner.run()
        print(result.durations)
    """

    def __init__(
        self,
        source: RawRecordSource,
        sink: ValidatedRecordSink,
        entities: Optional[Sequence[str]] = None,
        today: Optional[date] = None,
        settings: Optional[PipelineSettings] = None,
        enable_quality_checks: Optional[bool] = None,
    ):
        self.source = source
        self.sink = sink
        self.settings = settings or get_settings().pipeline
        self.today = today or date.today()
        self.enable_quality_checks = (
            self.settings.enable_quality_checks
            if enable_quality_checks is None
            else enable_quality_checks
        )

        names = ENTITY_ORDER if entities is None else entities
        selected = [get_entity_schema(name) for name in names]
        # Always run in the fixed entity order
        self.entities: List[EntitySchema] = sorted(
            selected, key=lambda s: ENTITY_ORDER.index(s.name)
        )
        self._cancel_requested = False

    def request_cancel(self) -> None:
        """Stop the run before the next entity starts"""
        self._cancel_requested = True

    def build_transform(self, schema: EntitySchema) -> EntityTransform:
        return EntityTransform(
            schema,
            today=self.today,
            date_floor=self.settings.date_floor,
            batch_size=self.settings.batch_size,
            max_workers=self.settings.max_workers,
        )

    def check_quality(self, schema: EntitySchema, records: List[Dict[str, Any]]) -> ValidationResult:
        frame = pl.DataFrame(records, schema=schema.output_schema)
        result = create_entity_validator(schema).validate(frame)
        if result.failures:
            logger.warning(
                "Silver quality findings",
                entity=schema.name,
                failed=[c.name for c in result.failures],
            )
        return result

    @timed_load
    async def load_entity(self, schema: EntitySchema) -> EntityLoadResult:
        """Fetch, cleanse and replace one entity's target table"""
        result = EntityLoadResult(entity=schema.name, table=schema.table)

        raw_rows = await self.source.fetch(schema.name)
        result.rows_read = len(raw_rows)

        typed = self.build_transform(schema).transform(raw_rows)
        if self.enable_quality_checks:
            typed = list(typed)
            result.quality = self.check_quality(schema, typed)

        result.rows_written = await self.sink.replace_all(schema.name, typed)
        return result

    def _finish(self, run: PipelineRunResult, start: float) -> None:
        run.completed_at = _utcnow()
        run.duration_seconds = time.perf_counter() - start

    async def run(self) -> PipelineRunResult:
        """
        Run every selected entity.

        Returns:
            PipelineRunResult with status SUCCESS (or CANCELLED)

        Raises:
            PipelineRunError: An entity failed; ``error.result`` holds the
                failing entity, the cause and the completed entities
        """
        self._cancel_requested = False
        start = time.perf_counter()
        run = PipelineRunResult(
            status=RunStatus.RUNNING,
            started_at=_utcnow(),
            processing_date=self.today,
        )

        logger.info(
            "pipeline_started",
            entities=[s.name for s in self.entities],
            processing_date=self.today.isoformat(),
        )

        for schema in self.entities:
            if self._cancel_requested:
                run.status = RunStatus.CANCELLED
                break

            try:
                entity_result = await self.load_entity(schema)
            except Exception as e:
                error = e if isinstance(e, PipelineError) else EntityLoadError(schema.name, cause=e)
                run.status = RunStatus.FAILED
                run.failed_entity = schema.name
                run.error = str(error)
                self._finish(run, start)
                logger.error(
                    "pipeline_failed",
                    failed_entity=schema.name,
                    error=run.error,
                    completed=run.durations,
                    duration_seconds=round(run.duration_seconds, 3),
                )
                raise PipelineRunError(run, cause=error) from e

            run.entities.append(entity_result)

        if run.status == RunStatus.RUNNING:
            run.status = RunStatus.SUCCESS
        self._finish(run, start)

        if run.status == RunStatus.CANCELLED:
            logger.warning(
                "pipeline_cancelled",
                completed=run.completed_entities,
                duration_seconds=round(run.duration_seconds, 3),
            )
        else:
            logger.info(
                "pipeline_completed",
                durations={k: round(v, 3) for k, v in run.durations.items()},
                rows_written=sum(r.rows_written for r in run.entities),
                duration_seconds=round(run.duration_seconds, 3),
            )

        return run


async def run_full_pipeline(
    entities: Optional[Sequence[str]] = None,
    today: Optional[date] = None,
    database_url: Optional[str] = None,
    create_tables: bool = False,
) -> PipelineRunResult:
    """
    Load the whole silver layer from the bronze staging tables.

    With no arguments, processes all six entities against the configured
    warehouse database.
    """
    settings = get_settings()
    await init_database(database_url, create_tables=create_tables)
    try:
        runner = PipelineRunner(
            source=StagingTableSource(),
            sink=DatabaseRecordSink(chunk_size=settings.pipeline.insert_chunk_size),
            entities=entities,
            today=today,
            settings=settings.pipeline,
        )
        return await runner.run()
    finally:
        await close_database()
