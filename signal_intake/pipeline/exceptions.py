"""Pipeline-specific exceptions."""

from typing import Optional


class PipelineError(Exception):
    """A run-level failure outside any single item.

    Attributes:
        message: Human-readable error message
        stage: Pipeline stage that failed (e.g. "dedup", "batch")
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        self.message = message
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        if self.stage:
            return f"{self.message} (stage: {self.stage})"
        return self.message
