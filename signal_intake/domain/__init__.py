"""Domain models for the signal intake pipeline."""

from .models import (
    DEGRADED_CATEGORY,
    EMAIL_NOT_FOUND,
    ERROR_CATEGORY,
    AlertSeverity,
    ContactSourceMethod,
    EvaluationProvenance,
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SourceType,
    SystemAlert,
)

__all__ = [
    "NormalizedItem",
    "EvaluationResult",
    "ExtractedContact",
    "SystemAlert",
    "SourceType",
    "EvaluationProvenance",
    "ContactSourceMethod",
    "AlertSeverity",
    "EMAIL_NOT_FOUND",
    "DEGRADED_CATEGORY",
    "ERROR_CATEGORY",
]
