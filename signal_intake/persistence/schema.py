"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the database schema and provides
conversion methods between ORM models and domain models. Timestamps are stored
as fixed-width ISO 8601 strings so they sort and compare lexicographically.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from signal_intake.domain.models import (
    EMAIL_NOT_FOUND,
    EvaluationProvenance,
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SystemAlert,
)
from signal_intake.logging import get_logger
from signal_intake.utils.timestamps import ensure_utc, utc_now

logger = get_logger(__name__, component="database")

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class CompanyModel(Base):
    """ORM model for companies table.

    One row per company name (case-insensitive), shared by every source.
    """

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False, unique=True)
    domain = Column(String(255), nullable=True)
    source = Column(String(50), nullable=False)

    # Enrichment, filled only while empty
    linkedin_url = Column(Text, nullable=True)
    website = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    employee_count = Column(Integer, nullable=True)

    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)


class RecordModel(Base):
    """ORM model for records table.

    Stores one evaluated item. ``(source, external_id)`` is unique and is the
    backstop for duplicates that slip past deduplication.
    """

    __tablename__ = "records"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)

    # Source information
    source = Column(String(50), nullable=False)
    external_id = Column(String(255), nullable=False)

    # Item details
    title = Column(Text, nullable=False)
    company_name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    url = Column(Text, nullable=False)
    application_url = Column(Text, nullable=True)
    job_type = Column(String(255), nullable=True)
    salary = Column(String(255), nullable=True)
    posted_at = Column(String(50), nullable=True)

    # Evaluation
    ai_valid = Column(Boolean, nullable=False, default=False)
    ai_score = Column(Integer, nullable=False, default=0)
    ai_category = Column(String(100), nullable=True)
    ai_experience = Column(Text, nullable=True)
    ai_experience_logic = Column(Text, nullable=True)
    ai_reasoning = Column(Text, nullable=True)
    ai_model = Column(String(100), nullable=True)
    ai_provenance = Column(String(20), nullable=True)
    application_email = Column(Text, nullable=True)
    duration = Column(String(255), nullable=True)

    raw_payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("source", "external_id", name="uq_records_source_external_id"),
        Index("idx_records_source_url", "source", "url"),
        Index("idx_records_posted_at", "source", "posted_at"),
    )

    @classmethod
    def from_domain(
        cls, item: NormalizedItem, company_id: str, evaluation: EvaluationResult
    ) -> "RecordModel":
        application_email = evaluation.application_email
        if not application_email or application_email == EMAIL_NOT_FOUND:
            application_email = None

        return cls(
            id=new_id(),
            company_id=company_id,
            source=item.source.value,
            external_id=item.external_id,
            title=item.title,
            company_name=item.company,
            location=item.location or None,
            description=item.description or None,
            url=item.url,
            application_url=item.application_url,
            job_type=item.job_type,
            salary=item.salary,
            posted_at=_format_datetime(item.posted_at),
            ai_valid=evaluation.is_valid,
            ai_score=evaluation.score,
            ai_category=evaluation.category,
            ai_experience=evaluation.experience or None,
            ai_experience_logic=evaluation.experience_logic or None,
            ai_reasoning=evaluation.reasoning or None,
            ai_model=evaluation.model,
            ai_provenance=evaluation.provenance.value,
            application_email=application_email,
            duration=evaluation.duration or None,
            raw_payload=item.raw_payload,
            created_at=_format_datetime(utc_now()),
        )

    def to_domain(self) -> NormalizedItem:
        """Rebuild the normalized item this record was created from."""
        return NormalizedItem(
            external_id=self.external_id,
            title=self.title,
            company=self.company_name,
            location=self.location or "",
            description=self.description or "",
            url=self.url,
            posted_at=_parse_datetime(self.posted_at),
            job_type=self.job_type,
            salary=self.salary,
            application_url=self.application_url,
            source=self.source,
            raw_payload=self.raw_payload or {},
        )

    def to_evaluation(self) -> EvaluationResult:
        return EvaluationResult(
            is_valid=self.ai_valid,
            score=self.ai_score,
            category=self.ai_category or "",
            experience=self.ai_experience or "",
            experience_logic=self.ai_experience_logic or "",
            reasoning=self.ai_reasoning or "",
            application_email=self.application_email or EMAIL_NOT_FOUND,
            duration=self.duration or "",
            model=self.ai_model,
            provenance=self.ai_provenance or EvaluationProvenance.PRIMARY.value,
        )


class SignalModel(Base):
    """ORM model for signals table: one recruitment signal per record."""

    __tablename__ = "signals"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    record_id = Column(String(36), ForeignKey("records.id", ondelete="CASCADE"), nullable=False)
    source = Column(String(50), nullable=False)
    signal_type = Column(String(50), nullable=False)
    signal_date = Column(String(50), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_signals_company", "company_id"),)


class ContactModel(Base):
    """ORM model for contacts table.

    A contact is unique per company by email, or by profile URL when it has no email.
    """

    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    profile_url = Column(Text, nullable=True)
    source = Column(String(50), nullable=False)
    source_method = Column(String(20), nullable=False)
    related_record_id = Column(
        String(36), ForeignKey("records.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_contacts_company_email"),
        Index("idx_contacts_company_profile", "company_id", "profile_url"),
    )

    def to_domain(self) -> ExtractedContact:
        return ExtractedContact(
            company_id=self.company_id,
            first_name=self.first_name,
            last_name=self.last_name,
            full_name=self.full_name,
            title=self.title,
            email=self.email,
            profile_url=self.profile_url,
            source=self.source,
            source_method=self.source_method,
            related_record_id=self.related_record_id,
        )


class SystemAlertModel(Base):
    """ORM model for system_alerts table."""

    __tablename__ = "system_alerts"

    id = Column(String(36), primary_key=True, default=new_id)
    source = Column(String(50), nullable=False)
    stage = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    alert_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_system_alerts_created", "created_at"),)

    def to_domain(self) -> SystemAlert:
        return SystemAlert(
            source=self.source,
            stage=self.stage,
            severity=self.severity,
            title=self.title,
            message=self.message,
            metadata=self.alert_metadata or {},
            created_at=_parse_datetime(self.created_at),
        )

    @classmethod
    def from_domain(cls, alert: SystemAlert) -> "SystemAlertModel":
        return cls(
            id=new_id(),
            source=alert.source,
            stage=alert.stage,
            severity=alert.severity,
            title=alert.title,
            message=alert.message,
            alert_metadata=alert.metadata,
            created_at=_format_datetime(alert.created_at or utc_now()),
        )


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601 string for database storage.

    Args:
        dt: Datetime object (naive values are treated as UTC)

    Returns:
        ISO 8601 formatted string or None
    """
    if dt is None:
        return None
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _parse_datetime(dt_str: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back to an aware UTC datetime."""
    if not dt_str:
        return None

    dt_str = dt_str.rstrip("Z")
    try:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(dt_str, "%Y-%m-%dT%H:%M:%S")
    return ensure_utc(dt)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        from sqlalchemy import inspect

        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
