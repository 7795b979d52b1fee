"""Exceptions raised while evaluating items with an AI model."""

from typing import Optional


class AIEvaluationError(Exception):
    """One model attempt failed.

    Covers transport errors, empty content, undecodable JSON and responses
    that fail schema validation. The evaluator catches it and moves on to the
    next attempt.
    """

    def __init__(self, message: str, model: Optional[str] = None) -> None:
        super().__init__(message)
        self.model = model
