"""Orchestrator - source runs, progress events, deduplicated writes."""

from .runner import (
    DEFAULT_SOURCE_KEY,
    ProgressCallback,
    RunResult,
    RunState,
    SourceRunner,
    resolve_source,
    run_all,
    run_source,
)
from .writer import DeduplicatingWriter

__all__ = [
    "DEFAULT_SOURCE_KEY",
    "ProgressCallback",
    "RunResult",
    "RunState",
    "SourceRunner",
    "resolve_source",
    "run_all",
    "run_source",
    "DeduplicatingWriter",
]
