"""Data access layer (repositories) for persistence operations.

This module provides repository classes for companies, records, signals,
contacts and system alerts. Each repository works inside a session owned by
the caller and translates SQLAlchemy failures into PersistenceError.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from signal_intake.domain.models import (
    ContactSourceMethod,
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SourceType,
    SystemAlert,
)
from signal_intake.logging import get_logger
from signal_intake.utils.domains import mask_email
from signal_intake.utils.timestamps import utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    CompanyModel,
    ContactModel,
    RecordModel,
    SignalModel,
    SystemAlertModel,
    _format_datetime,
)

logger = get_logger(__name__, component="database")

SIGNAL_DESCRIPTION_LIMIT = 500

GENERIC_EMAIL_PREFIXES = frozenset(
    [
        "info", "hr", "hello", "hej", "jobb", "jobs", "job", "kansli", "work",
        "kontakt", "contact", "reception", "office", "admin", "support", "career",
        "careers", "rekrytering", "recruiting", "recruitment", "personal",
        "ekonomi", "faktura", "invoice", "order", "sales", "mail", "post",
        "service", "kundtjanst", "kundservice", "application", "apply",
    ]
)


def is_generic_contact_name(name: Optional[str]) -> bool:
    """Whether a name is really a mailbox prefix such as "Info" or "Hr"."""
    if not name:
        return False
    return name.strip().lower() in GENERIC_EMAIL_PREFIXES


class CompanyRepository:
    """Repository for companies."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_name(self, name: str) -> Optional[CompanyModel]:
        try:
            stmt = select(CompanyModel).where(CompanyModel.name_key == name.strip().lower())
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving company {name}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve company: {e}") from e

    def find_or_create(self, name: str, domain: Optional[str], source: str) -> str:
        """Return the id of the company called ``name``, creating it if needed.

        Names match case-insensitively. An existing company without a domain
        adopts ``domain``.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.get_by_name(name)
            if existing is not None:
                if domain and not existing.domain:
                    existing.domain = domain
                    existing.updated_at = _format_datetime(utc_now())
                    self.session.flush()
                return existing.id

            now = _format_datetime(utc_now())
            company = CompanyModel(
                name=name.strip(),
                name_key=name.strip().lower(),
                domain=domain,
                source=source,
                created_at=now,
                updated_at=now,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(company)
            except IntegrityError:
                # Another writer created it between the lookup and the insert
                existing = self.get_by_name(name)
                if existing is None:
                    raise
                return existing.id

            logger.debug(
                f"Created company {company.name}",
                extra={"event": "database.company.created", "company_id": company.id, "source": source},
            )
            return company.id

        except PersistenceError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error creating company {name}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create company due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error finding or creating company {name}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to find or create company: {e}") from e

    def enrich(self, company_id: str, **fields: Any) -> List[str]:
        """Fill enrichment columns that are still empty; never overwrite.

        Returns:
            Names of the columns that were filled

        Raises:
            RecordNotFoundError: If the company does not exist
            PersistenceError: If database error occurs
        """
        allowed = ("linkedin_url", "website", "description", "employee_count")
        try:
            company = self.session.get(CompanyModel, company_id)
            if company is None:
                raise RecordNotFoundError(f"Company {company_id} not found")

            filled = []
            for column in allowed:
                value = fields.get(column)
                if value in (None, "") or getattr(company, column) not in (None, ""):
                    continue
                setattr(company, column, value)
                filled.append(column)

            if filled:
                company.updated_at = _format_datetime(utc_now())
                self.session.flush()
            return filled

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error enriching company {company_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to enrich company: {e}") from e


class RecordRepository:
    """Repository for evaluated item records."""

    def __init__(self, session: Session):
        self.session = session

    def get_identifiers(self, source: str) -> Set[str]:
        """All persisted external ids and urls for ``source``, as one set."""
        try:
            stmt = select(RecordModel.external_id, RecordModel.url).where(
                RecordModel.source == source
            )
            identifiers: Set[str] = set()
            for external_id, url in self.session.execute(stmt):
                identifiers.add(external_id)
                if url:
                    identifiers.add(url)
            return identifiers
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving identifiers for {source}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve identifiers: {e}") from e

    def create(self, item: NormalizedItem, company_id: str, evaluation: EvaluationResult) -> str:
        """Insert a record for ``item``.

        Raises:
            DataIntegrityError: If the (source, external_id) pair already exists
            PersistenceError: If database error occurs
        """
        try:
            record = RecordModel.from_domain(item, company_id, evaluation)
            self.session.add(record)
            self.session.flush()
            return record.id
        except IntegrityError as e:
            logger.error(
                f"Integrity error creating record {item.source.value}/{item.external_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(
                f"Failed to create record due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating record {item.external_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create record: {e}") from e

    def get_by_external_id(self, source: str, external_id: str) -> Optional[RecordModel]:
        try:
            stmt = select(RecordModel).where(
                RecordModel.source == source, RecordModel.external_id == external_id
            )
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving record {source}/{external_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve record: {e}") from e

    def count(self, source: Optional[str] = None) -> int:
        try:
            stmt = select(func.count()).select_from(RecordModel)
            if source:
                stmt = stmt.where(RecordModel.source == source)
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting records: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count records: {e}") from e

    def delete_older_than(self, source: str, cutoff: datetime) -> int:
        """Delete records of ``source`` published (or stored) before ``cutoff``.

        Signals go with their record; contacts keep existing but lose the link.

        Returns:
            Number of records deleted
        """
        try:
            cutoff_str = _format_datetime(cutoff)
            stmt = delete(RecordModel).where(
                RecordModel.source == source,
                func.coalesce(RecordModel.posted_at, RecordModel.created_at) < cutoff_str,
            )
            result = self.session.execute(stmt, execution_options={"synchronize_session": False})
            self.session.flush()
            deleted_count = result.rowcount or 0

            logger.info(
                f"Deleted {deleted_count} {source} records older than {cutoff_str}",
                extra={"event": "database.records.cleaned", "source": source, "deleted": deleted_count},
            )
            return deleted_count

        except SQLAlchemyError as e:
            logger.error(f"Error deleting old {source} records: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete old records: {e}") from e


def build_signal_payload(record_id: str, item: NormalizedItem, evaluation: EvaluationResult) -> Dict[str, Any]:
    return {
        "record_id": record_id,
        "title": item.title,
        "company": item.company,
        "location": item.location,
        "url": item.url,
        "description": item.description[:SIGNAL_DESCRIPTION_LIMIT],
        "score": evaluation.score,
        "valid": evaluation.is_valid,
        "duration": evaluation.duration,
        "applicationEmail": evaluation.application_email,
        "reasoning": evaluation.reasoning,
    }


def signal_type_for(source: SourceType) -> str:
    if source == SourceType.GOOGLE_MAPS:
        return "google_maps_lead"
    return f"{source.value}_job_ad"


class SignalRepository:
    """Repository for recruitment signals."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        company_id: str,
        record_id: str,
        item: NormalizedItem,
        evaluation: EvaluationResult,
    ) -> str:
        try:
            signal = SignalModel(
                company_id=company_id,
                record_id=record_id,
                source=item.source.value,
                signal_type=signal_type_for(item.source),
                signal_date=_format_datetime(item.posted_at or utc_now()),
                payload=build_signal_payload(record_id, item, evaluation),
                created_at=_format_datetime(utc_now()),
            )
            self.session.add(signal)
            self.session.flush()
            return signal.id
        except IntegrityError as e:
            logger.error(f"Integrity error creating signal for record {record_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create signal due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating signal for record {record_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create signal: {e}") from e

    def get_for_record(self, record_id: str) -> List[SignalModel]:
        try:
            stmt = select(SignalModel).where(SignalModel.record_id == record_id)
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving signals for record {record_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve signals: {e}") from e


class ContactRepository:
    """Repository for company contacts."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(self, contact: ExtractedContact) -> Optional[str]:
        """Insert or update a contact.

        - Names that are only a mailbox prefix ("Info", "Hr") are cleared.
        - A comma-separated email becomes one row per address.
        - An ``ai_extracted`` write never replaces an ``api_extracted`` row.
        - Without an email, the profile URL is the key.

        Returns:
            Id of the first row written, or None when every write was skipped

        Raises:
            PersistenceError: If database error occurs
        """
        fields = {
            "first_name": contact.first_name,
            "last_name": contact.last_name,
            "full_name": contact.full_name,
        }
        if is_generic_contact_name(contact.full_name):
            logger.debug(
                "Clearing generic contact name",
                extra={"event": "database.contact.generic_name", "company_id": contact.company_id},
            )
            fields = {"first_name": None, "last_name": None, "full_name": None}

        try:
            if contact.email:
                emails = [
                    e.strip().lower() for e in contact.email.split(",") if "@" in e and e.strip()
                ]
                first_id: Optional[str] = None
                for email in emails:
                    contact_id = self._write(contact, fields, email=email)
                    if first_id is None:
                        first_id = contact_id
                return first_id

            if contact.profile_url:
                return self._write(contact, fields, email=None)

            return None

        except IntegrityError as e:
            logger.error(f"Integrity error upserting contact: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert contact due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting contact: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert contact: {e}") from e

    def _write(
        self, contact: ExtractedContact, names: Dict[str, Optional[str]], email: Optional[str]
    ) -> Optional[str]:
        if email:
            key = ContactModel.email == email
        else:
            key = ContactModel.profile_url == contact.profile_url
        stmt = select(ContactModel).where(ContactModel.company_id == contact.company_id, key)
        existing = self.session.execute(stmt).scalar_one_or_none()
        now = _format_datetime(utc_now())

        if existing is not None:
            if (
                contact.source_method == ContactSourceMethod.AI_EXTRACTED.value
                and existing.source_method == ContactSourceMethod.API_EXTRACTED.value
            ):
                logger.info(
                    "Preserving api_extracted contact, skipping ai_extracted overwrite",
                    extra={
                        "event": "database.contact.preserved",
                        "company_id": contact.company_id,
                        "email": mask_email(email),
                    },
                )
                return None

            for column, value in names.items():
                if value:
                    setattr(existing, column, value)
            existing.title = contact.title or existing.title
            existing.profile_url = contact.profile_url or existing.profile_url
            existing.source = contact.source
            existing.source_method = contact.source_method
            existing.related_record_id = contact.related_record_id or existing.related_record_id
            existing.updated_at = now
            self.session.flush()
            return existing.id

        row = ContactModel(
            company_id=contact.company_id,
            title=contact.title,
            email=email,
            profile_url=contact.profile_url,
            source=contact.source,
            source_method=contact.source_method,
            related_record_id=contact.related_record_id,
            created_at=now,
            updated_at=now,
            **names,
        )
        self.session.add(row)
        self.session.flush()
        logger.debug(
            "Contact created",
            extra={"event": "database.contact.created", "contact_id": row.id, "email": mask_email(email)},
        )
        return row.id

    def get_for_company(self, company_id: str) -> List[ExtractedContact]:
        try:
            stmt = (
                select(ContactModel)
                .where(ContactModel.company_id == company_id)
                .order_by(ContactModel.created_at)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving contacts for company {company_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve contacts: {e}") from e


class AlertRepository:
    """Repository for system alerts."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, alert: SystemAlert) -> str:
        try:
            row = SystemAlertModel.from_domain(alert)
            self.session.add(row)
            self.session.flush()
            return row.id
        except SQLAlchemyError as e:
            logger.error(f"Error recording system alert: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record system alert: {e}") from e

    def get_recent(self, limit: int = 50, source: Optional[str] = None) -> List[SystemAlert]:
        try:
            stmt = select(SystemAlertModel).order_by(SystemAlertModel.created_at.desc()).limit(limit)
            if source:
                stmt = stmt.where(SystemAlertModel.source == source)
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving system alerts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve system alerts: {e}") from e
