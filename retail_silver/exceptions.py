"""
Pipeline Exceptions

Exception Hierarchy:
    PipelineError (base)
    ├── SourceUnavailableError   raw records for an entity cannot be read
    ├── SinkWriteError           target store rejected the replacement
    ├── EntityLoadError          any other failure while loading an entity
    └── PipelineRunError         raised by the runner, carries the run summary

Invalid field values are not errors; the normalizers turn them into nulls.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from retail_silver.pipeline.runner import PipelineRunResult


class PipelineError(Exception):
    """
    Base exception for silver layer load failures.

    Attributes:
        entity: Entity being processed when the failure happened
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.entity = entity
        self.cause = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        base_msg = self.message
        if self.entity:
            base_msg = f"[{self.entity}] {base_msg}"
        if self.cause is not None:
            base_msg += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "entity": self.entity,
            "cause": f"{type(self.cause).__name__}: {self.cause}" if self.cause else None,
        }


class SourceUnavailableError(PipelineError):
    """Raw record source cannot be read for an entity"""

    def __init__(self, entity: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        super().__init__(message or "Raw record source unavailable", entity=entity, cause=cause)


class SinkWriteError(PipelineError):
    """Target store rejected the write for an entity"""

    def __init__(self, entity: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        super().__init__(message or "Target store rejected the write", entity=entity, cause=cause)


class EntityLoadError(PipelineError):
    """Unexpected failure while transforming or loading an entity"""

    def __init__(self, entity: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        super().__init__(message or "Entity load failed", entity=entity, cause=cause)


class PipelineRunError(PipelineError):
    """
    A pipeline run aborted.

    ``result`` holds the run summary: the failing entity, the error and the
    timings of the entities that completed before the failure.
    """

    def __init__(self, result: "PipelineRunResult", cause: Optional[PipelineError] = None):
        self.result = result
        super().__init__(
            f"Pipeline run failed at entity '{result.failed_entity}'",
            entity=result.failed_entity,
            cause=cause,
        )
