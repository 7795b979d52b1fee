"""Pipeline orchestration for deduplication, evaluation, persistence, and run reporting."""

from .batch import BatchRunner, chunked
from .dedup import Deduplicator
from .exceptions import PipelineError
from .models import ProcessedOutcome, RunResult, RunStats
from .runner import SignalPipeline

__all__ = [
    "SignalPipeline",
    "BatchRunner",
    "Deduplicator",
    "PipelineError",
    "ProcessedOutcome",
    "RunResult",
    "RunStats",
    "chunked",
]
