"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from signal_intake.domain.models import SourceType

DEFAULT_EXCLUSION_KEYWORDS: List[str] = [
    "lärare",
    "undersköterska",
    "sjuksköterska",
    "läkare",
    "snickare",
    "hantverkare",
    "städare",
    "lokalvård",
    "kock",
    "servitör",
    "bartender",
]

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class SourceConfig(BaseModel):
    """Configuration for a single signal source."""

    type: SourceType = Field(..., description="Source type (indeed, linkedin, arbetsformedlingen, google_maps)")
    enabled: bool = Field(True, description="Whether this source may be run")
    max_items: int = Field(50, ge=1, le=1000, description="Items to request from the origin per run")
    keywords: Optional[str] = Field(
        None, description="Search expression override; adapters fall back to their own defaults"
    )
    exclusion_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUSION_KEYWORDS),
        description="Items whose title, company or description contain any of these are dropped",
    )
    search_queries: List[str] = Field(
        default_factory=list, description="Place search strings (google_maps only)"
    )
    country: str = Field("SE", min_length=2, max_length=2, description="ISO country code")

    @field_validator("exclusion_keywords")
    @classmethod
    def normalize_keywords(cls, v: List[str]) -> List[str]:
        """Lowercase and strip keywords, dropping empty entries."""
        return [term.strip().lower() for term in v if term and term.strip()]

    @field_validator("keywords")
    @classmethod
    def blank_keywords_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: str) -> str:
        return v.strip().upper()

    model_config = {"use_enum_values": True}


class EvaluationConfig(BaseModel):
    """AI evaluation settings."""

    primary_model: str = Field("openai/gpt-4o", min_length=1)
    fallback_model: Optional[str] = Field("openai/gpt-4o-mini")
    company_primary_model: str = Field("google/gemini-2.5-flash-lite", min_length=1)
    company_fallback_model: Optional[str] = Field("openai/gpt-4o-mini")
    temperature: float = Field(0.3, ge=0.0, le=1.0, description="Kept low for consistent scoring")
    request_timeout_seconds: float = Field(
        60.0, gt=0, le=600, description="Upper bound for a single model attempt"
    )
    base_url: str = Field(OPENROUTER_BASE_URL, description="OpenAI-compatible API base URL")

    @field_validator("fallback_model", "company_fallback_model")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None


class PipelineConfig(BaseModel):
    """Batch processing settings."""

    concurrency_limit: int = Field(3, ge=1, le=20, description="Items processed concurrently per chunk")
    item_timeout_seconds: Optional[float] = Field(
        120.0, gt=0, description="Upper bound for persisting one evaluated item and its contacts"
    )
    retention_days: int = Field(20, ge=1, le=365, description="Records older than this are cleaned up")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """HTTP settings shared by all adapters."""

    http_request_timeout: int = Field(
        300, ge=5, le=300, description="Request timeout for origin API calls (seconds)"
    )
    user_agent: str = Field(
        "SignalIntakePipeline/0.1",
        min_length=1,
        description="User-Agent string for HTTP requests",
    )

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object for the signal intake pipeline."""

    sources: List[SourceConfig] = Field(..., min_length=1, description="Configured sources")
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)

    @model_validator(mode="after")
    def validate_sources(self):
        """Each source type may appear once, and a google_maps source needs queries."""
        seen = set()
        for source in self.sources:
            if source.type in seen:
                raise ValueError(f"Duplicate source: {source.type} appears multiple times")
            seen.add(source.type)

            if source.type == SourceType.GOOGLE_MAPS.value and not source.search_queries:
                raise ValueError("google_maps source requires at least one search query")

        return self

    def get_source(self, source_type: str) -> Optional[SourceConfig]:
        """Get a configured source by type, or None."""
        wanted = SourceType(source_type).value
        for source in self.sources:
            if source.type == wanted:
                return source
        return None

    def get_enabled_sources(self) -> List[SourceConfig]:
        return [source for source in self.sources if source.enabled]
