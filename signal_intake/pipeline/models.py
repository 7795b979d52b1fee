"""Data models for pipeline execution tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from signal_intake.domain.models import EvaluationResult, NormalizedItem
from signal_intake.utils.timestamps import format_timestamp


@dataclass
class ProcessedOutcome:
    """
    Result of running one item through evaluate, persist, and extract.

    Attributes:
        item: The normalized item that was processed
        evaluation: Evaluation attached to the item (``Error`` category on failure)
        company_id: Owning company row, when one was resolved
        record_id: Persisted record row, when the insert succeeded
        signal_id: Persisted signal row, when the insert succeeded
        success: Whether the item reached the persisted state without an error
        error: Error message when ``success`` is False
        contacts_created: Number of contacts written for the item
    """

    item: NormalizedItem
    evaluation: EvaluationResult
    company_id: Optional[str] = None
    record_id: Optional[str] = None
    signal_id: Optional[str] = None
    success: bool = True
    error: Optional[str] = None
    contacts_created: int = 0

    @property
    def is_valid(self) -> bool:
        return self.success and self.evaluation.is_valid

    def to_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "external_id": self.item.external_id,
            "title": self.item.title,
            "company": self.item.company,
            "score": self.evaluation.score,
            "category": self.evaluation.category,
            "provenance": self.evaluation.provenance.value,
            "record_id": self.record_id,
            "contacts_created": self.contacts_created,
        }
        if self.error:
            summary["error"] = self.error
        return summary


@dataclass(frozen=True)
class RunStats:
    """
    Counts for one pipeline run.

    Attributes:
        fetched: Items handed to the pipeline
        after_dedup: Items left after dropping already-persisted ones
        after_filter: Items handed to the batch runner
        processed: Outcomes produced by the batch runner
        valid: Successful outcomes judged valid
        discarded: Successful outcomes judged not valid
        errors: Failed outcomes, or 1 for a run-level failure
    """

    fetched: int = 0
    after_dedup: int = 0
    after_filter: int = 0
    processed: int = 0
    valid: int = 0
    discarded: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "fetched": self.fetched,
            "after_dedup": self.after_dedup,
            "after_filter": self.after_filter,
            "processed": self.processed,
            "valid": self.valid,
            "discarded": self.discarded,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class RunResult:
    """
    Aggregate result of one ``run_pipeline`` invocation.

    Built once at the end of the run and immutable afterwards. The outcome
    lists follow input order.

    Attributes:
        run_id: UUID4 identifying the run in logs and alerts
        source: Source the items came from
        start_time: UTC timestamp when the run began
        end_time: UTC timestamp when the run completed
        duration_seconds: Wall time of the run
        stats: Counts for the run
        valid_outcomes: Successful outcomes judged valid
        discarded_outcomes: Successful outcomes judged not valid
        error_outcomes: Failed outcomes
        error: Run-level failure message, if the run aborted
    """

    run_id: str
    source: str
    start_time: datetime
    end_time: datetime
    stats: RunStats
    valid_outcomes: List[ProcessedOutcome] = field(default_factory=list)
    discarded_outcomes: List[ProcessedOutcome] = field(default_factory=list)
    error_outcomes: List[ProcessedOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def had_errors(self) -> bool:
        return self.error is not None or self.stats.errors > 0

    def to_summary(self) -> Dict[str, Any]:
        """JSON-friendly summary for logs and the CLI."""
        return {
            "run_id": self.run_id,
            "source": self.source,
            "start_time": format_timestamp(self.start_time),
            "end_time": format_timestamp(self.end_time),
            "duration_seconds": round(self.duration_seconds, 3),
            "stats": self.stats.to_dict(),
            "valid": [outcome.to_summary() for outcome in self.valid_outcomes],
            "errors": [outcome.to_summary() for outcome in self.error_outcomes],
            "error": self.error,
        }
