"""Core domain models for signal items, evaluations, contacts, and alerts.

This module defines the data structures shared by every pipeline stage:
- NormalizedItem: canonical record produced by a source adapter
- EvaluationResult: AI-assigned validity, score, and category for one item
- ExtractedContact: contact candidate derived from an item and its evaluation
- SystemAlert: operational alert written by the alert emitter
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EMAIL_NOT_FOUND = "Email Not Found"
DEGRADED_CATEGORY = "Evaluation Failed"
ERROR_CATEGORY = "Error"


class SourceType(str, Enum):
    """Supported signal sources."""

    INDEED = "indeed"
    LINKEDIN = "linkedin"
    ARBETSFORMEDLINGEN = "arbetsformedlingen"
    GOOGLE_MAPS = "google_maps"

    @property
    def is_job_source(self) -> bool:
        """Whether items from this source are job postings (as opposed to leads)."""
        return self is not SourceType.GOOGLE_MAPS


class EvaluationProvenance(str, Enum):
    """Which attempt produced an evaluation."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    DEGRADED = "degraded"
    ERROR = "error"


class ContactSourceMethod(str, Enum):
    """How a contact was obtained."""

    API_EXTRACTED = "api_extracted"
    AI_EXTRACTED = "ai_extracted"


class AlertSeverity(str, Enum):
    """Severity levels for system alerts."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


def _ensure_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class NormalizedItem(BaseModel):
    """Canonical per-item record produced by a source adapter.

    ``external_id`` is unique within a source at the origin; ``url`` is a
    secondary near-unique key. Both are used by deduplication. Instances are
    immutable once created.
    """

    external_id: str = Field(..., description="Item ID at the source")
    title: str = Field(..., description="Job title or place name")
    company: str = Field(..., description="Owning company name")
    location: str = Field("", description="Free-text location")
    description: str = Field("", description="Plain-text description")
    url: str = Field(..., description="Canonical link to the item")
    posted_at: Optional[datetime] = Field(None, description="When the item was published (UTC)")
    job_type: Optional[str] = Field(None, description="Employment type label")
    salary: Optional[str] = Field(None, description="Salary label")
    application_url: Optional[str] = Field(None, description="Where to apply")
    source: SourceType = Field(..., description="Origin of the item")
    raw_payload: Dict[str, Any] = Field(default_factory=dict, description="Unmodified raw record")

    model_config = ConfigDict(frozen=True)

    @field_validator("external_id", "title", "company", "url")
    @classmethod
    def strip_required(cls, v: str) -> str:
        """Strip whitespace from identifying fields."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty or whitespace-only")
        return v.strip()

    @field_validator("posted_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _ensure_utc(v)


class EvaluationResult(BaseModel):
    """AI-assigned evaluation for one item."""

    is_valid: bool
    score: int = Field(..., ge=0, le=100)
    category: str
    experience: str = ""
    experience_logic: str = ""
    reasoning: str = ""
    application_email: str = EMAIL_NOT_FOUND
    duration: str = ""
    model: Optional[str] = None
    provenance: EvaluationProvenance = EvaluationProvenance.PRIMARY

    model_config = ConfigDict(frozen=True)

    @property
    def has_application_email(self) -> bool:
        email = (self.application_email or "").strip()
        return bool(email) and email != EMAIL_NOT_FOUND and "@" in email

    @classmethod
    def degraded(cls, error_message: str) -> "EvaluationResult":
        """Deterministic result used when every AI attempt has failed."""
        return cls(
            is_valid=False,
            score=0,
            category=DEGRADED_CATEGORY,
            experience_logic="AI evaluation unavailable",
            reasoning=error_message or "AI evaluation failed",
            application_email=EMAIL_NOT_FOUND,
            provenance=EvaluationProvenance.DEGRADED,
        )

    @classmethod
    def error(cls, error_message: str) -> "EvaluationResult":
        """Result attached to an item whose processing raised."""
        return cls(
            is_valid=False,
            score=0,
            category=ERROR_CATEGORY,
            experience_logic="Error during processing",
            reasoning=error_message,
            application_email=EMAIL_NOT_FOUND,
            provenance=EvaluationProvenance.ERROR,
        )


class ExtractedContact(BaseModel):
    """Contact candidate for a company.

    A contact must carry an email address or a professional profile URL;
    anything else is rejected at construction time.
    """

    company_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None
    profile_url: Optional[str] = None
    source: str
    source_method: ContactSourceMethod
    related_record_id: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        cleaned = v.strip().lower()
        return cleaned or None

    @field_validator("profile_url", "first_name", "last_name", "full_name", "title")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @model_validator(mode="after")
    def require_reachable(self):
        if not self.email and not self.profile_url:
            raise ValueError("Contact requires an email or a profile URL")
        return self


class SystemAlert(BaseModel):
    """Operational alert raised by a pipeline stage."""

    source: str
    stage: str
    severity: AlertSeverity
    title: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(v)
