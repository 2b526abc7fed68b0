"""
Pipeline Module
"""
from .runner import (
    EntityLoadResult,
    PipelineRunner,
    PipelineRunResult,
    RunStatus,
    run_full_pipeline,
)

__all__ = [
    "EntityLoadResult",
    "PipelineRunner",
    "PipelineRunResult",
    "RunStatus",
    "run_full_pipeline",
]
