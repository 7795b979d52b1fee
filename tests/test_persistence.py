"""Unit tests for persistence layer."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, text

from signal_intake.domain.models import (
    EMAIL_NOT_FOUND,
    AlertSeverity,
    ContactSourceMethod,
    EvaluationProvenance,
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SourceType,
    SystemAlert,
)
from signal_intake.persistence import (
    AlertRepository,
    CompanyRepository,
    ContactRepository,
    DatabaseConnectionError,
    DataIntegrityError,
    RecordNotFoundError,
    RecordRepository,
    SignalRepository,
    SqlPersistenceGateway,
    close_database,
    get_session,
    init_database,
)
from signal_intake.persistence.repositories import is_generic_contact_name, signal_type_for
from signal_intake.persistence.schema import CompanyModel, ContactModel, RecordModel, SignalModel
from signal_intake.utils.timestamps import utc_now


@pytest.fixture
def database():
    """Create a temporary in-memory database for testing."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


def make_item(external_id="job-1", source=SourceType.INDEED, posted_at=None, **overrides):
    fields = {
        "external_id": external_id,
        "title": "Junior Data Analyst",
        "company": "Acme AB",
        "location": "Stockholm",
        "description": "Analys av försäljningsdata.",
        "url": f"https://se.indeed.com/viewjob?jk={external_id}",
        "posted_at": posted_at,
        "source": source,
        "raw_payload": {"id": external_id, "jobType": ["Heltid"]},
    }
    fields.update(overrides)
    return NormalizedItem(**fields)


def make_evaluation(**overrides):
    fields = {
        "is_valid": True,
        "score": 82,
        "category": "IT/Teknik",
        "experience": "1",
        "reasoning": "Entry-level analyst role",
        "application_email": "jobs@acme.se",
        "model": "openai/gpt-4o",
    }
    fields.update(overrides)
    return EvaluationResult(**fields)


def make_contact(company_id, **overrides):
    fields = {
        "company_id": company_id,
        "first_name": "Erik",
        "last_name": "Lindgren",
        "full_name": "Erik Lindgren",
        "email": "erik.lindgren@acme.se",
        "source": "indeed_job_ad",
        "source_method": ContactSourceMethod.AI_EXTRACTED,
    }
    fields.update(overrides)
    return ExtractedContact(**fields)


def create_company(name="Acme AB", domain="acme.se", source="indeed"):
    with get_session() as session:
        return CompanyRepository(session).find_or_create(name, domain, source)


def create_record(company_id, item=None, evaluation=None):
    with get_session() as session:
        return RecordRepository(session).create(item or make_item(), company_id, evaluation or make_evaluation())


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_creates_file_and_parents(self, tmp_path):
        db_file = tmp_path / "subdir" / "nested" / "test.db"

        init_database(f"sqlite:///{db_file}")
        try:
            assert db_file.exists()
            with get_session() as session:
                tables = {
                    row[0]
                    for row in session.execute(
                        text("SELECT name FROM sqlite_master WHERE type='table'")
                    )
                }
            assert {"companies", "records", "signals", "contacts", "system_alerts"} <= tables
        finally:
            close_database()

    def test_schema_creation_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'test.db'}"

        init_database(db_url)
        company_id = create_company()
        close_database()

        init_database(db_url)
        try:
            with get_session() as session:
                assert session.get(CompanyModel, company_id) is not None
        finally:
            close_database()

    def test_init_database_invalid_url_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

    def test_get_session_without_init_raises_error(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            with get_session():
                pass


class TestSessionManagement:
    def test_session_commits_on_success(self, database):
        company_id = create_company()

        with get_session() as session:
            assert session.get(CompanyModel, company_id).name == "Acme AB"

    def test_session_rolls_back_on_exception(self, database):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                CompanyRepository(session).find_or_create("Rollback AB", None, "indeed")
                raise RuntimeError("boom")

        with get_session() as session:
            assert CompanyRepository(session).get_by_name("Rollback AB") is None


class TestCompanyRepository:
    def test_find_or_create_is_case_insensitive(self, database):
        first = create_company("Acme AB", None)
        second = create_company("  ACME ab ", "acme.se", "linkedin")

        assert first == second
        with get_session() as session:
            company = session.get(CompanyModel, first)
            assert company.domain == "acme.se"
            assert company.source == "indeed"

    def test_existing_domain_is_kept(self, database):
        company_id = create_company("Acme AB", "acme.se")
        create_company("Acme AB", "other.se")

        with get_session() as session:
            assert session.get(CompanyModel, company_id).domain == "acme.se"

    def test_enrich_fills_only_empty_columns(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = CompanyRepository(session)
            first = repo.enrich(company_id, website="https://acme.se", employee_count=50)
            second = repo.enrich(company_id, website="https://acme.com", linkedin_url="")

        assert first == ["website", "employee_count"]
        assert second == []
        with get_session() as session:
            company = session.get(CompanyModel, company_id)
            assert company.website == "https://acme.se"
            assert company.linkedin_url is None

    def test_enrich_unknown_company(self, database):
        with get_session() as session:
            with pytest.raises(RecordNotFoundError):
                CompanyRepository(session).enrich("missing", website="https://x.se")


class TestRecordRepository:
    def test_create_and_identifiers(self, database):
        company_id = create_company()
        create_record(company_id)
        create_record(company_id, make_item("li-1", source=SourceType.LINKEDIN))

        with get_session() as session:
            repo = RecordRepository(session)
            assert repo.get_identifiers("indeed") == {
                "job-1",
                "https://se.indeed.com/viewjob?jk=job-1",
            }
            assert repo.count() == 2
            assert repo.count("linkedin") == 1

    def test_duplicate_raises_integrity_error(self, database):
        company_id = create_company()
        create_record(company_id)

        with pytest.raises(DataIntegrityError):
            create_record(company_id)

    def test_same_external_id_different_source(self, database):
        company_id = create_company()
        create_record(company_id, make_item("x", source=SourceType.INDEED))
        create_record(company_id, make_item("x", source=SourceType.LINKEDIN))

        with get_session() as session:
            assert RecordRepository(session).count() == 2

    def test_record_round_trip(self, database):
        company_id = create_company()
        posted = datetime(2025, 11, 4, 8, 30, tzinfo=timezone.utc)
        item = make_item(posted_at=posted, application_url="https://acme.se/apply")
        evaluation = make_evaluation(provenance=EvaluationProvenance.FALLBACK)
        create_record(company_id, item, evaluation)

        with get_session() as session:
            record = RecordRepository(session).get_by_external_id("indeed", "job-1")
            restored_item = record.to_domain()
            restored_eval = record.to_evaluation()

        assert restored_item.posted_at == posted
        assert restored_item.application_url == "https://acme.se/apply"
        assert restored_item.raw_payload == {"id": "job-1", "jobType": ["Heltid"]}
        assert restored_eval.score == 82
        assert restored_eval.model == "openai/gpt-4o"
        assert restored_eval.provenance is EvaluationProvenance.FALLBACK

    def test_missing_email_stored_as_null(self, database):
        company_id = create_company()
        create_record(company_id, evaluation=make_evaluation(application_email=EMAIL_NOT_FOUND))

        with get_session() as session:
            record = RecordRepository(session).get_by_external_id("indeed", "job-1")
            assert record.application_email is None
            assert record.to_evaluation().application_email == EMAIL_NOT_FOUND

    def test_delete_older_than(self, database):
        company_id = create_company()
        now = utc_now()
        old_id = create_record(company_id, make_item("old", posted_at=now - timedelta(days=30)))
        create_record(company_id, make_item("new", posted_at=now - timedelta(days=2)))
        create_record(company_id, make_item("undated"))
        create_record(company_id, make_item("other", source=SourceType.LINKEDIN, posted_at=now - timedelta(days=30)))

        with get_session() as session:
            SignalRepository(session).create(company_id, old_id, make_item("old"), make_evaluation())
            ContactRepository(session).upsert(make_contact(company_id, related_record_id=old_id))

        with get_session() as session:
            deleted = RecordRepository(session).delete_older_than("indeed", now - timedelta(days=20))

        assert deleted == 1
        with get_session() as session:
            repo = RecordRepository(session)
            assert repo.get_identifiers("indeed") >= {"new", "undated"}
            assert "old" not in repo.get_identifiers("indeed")
            assert repo.count("linkedin") == 1
            assert session.execute(select(SignalModel)).first() is None
            contact = session.execute(select(ContactModel)).scalar_one()
            assert contact.related_record_id is None


class TestSignalRepository:
    @pytest.mark.parametrize(
        "source,expected",
        [
            (SourceType.INDEED, "indeed_job_ad"),
            (SourceType.LINKEDIN, "linkedin_job_ad"),
            (SourceType.ARBETSFORMEDLINGEN, "arbetsformedlingen_job_ad"),
            (SourceType.GOOGLE_MAPS, "google_maps_lead"),
        ],
    )
    def test_signal_type(self, source, expected):
        assert signal_type_for(source) == expected

    def test_create_builds_payload(self, database):
        company_id = create_company()
        item = make_item(description="x" * 800)
        record_id = create_record(company_id, item)

        with get_session() as session:
            signal_id = SignalRepository(session).create(company_id, record_id, item, make_evaluation())

        with get_session() as session:
            (signal,) = SignalRepository(session).get_for_record(record_id)

        assert signal.id == signal_id
        assert signal.signal_type == "indeed_job_ad"
        assert signal.payload["record_id"] == record_id
        assert signal.payload["score"] == 82
        assert signal.payload["applicationEmail"] == "jobs@acme.se"
        assert len(signal.payload["description"]) == 500


class TestContactRepository:
    def test_insert_and_update_same_email(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = ContactRepository(session)
            first = repo.upsert(make_contact(company_id))
            second = repo.upsert(make_contact(company_id, title="Controller"))
            contacts = repo.get_for_company(company_id)

        assert first == second
        assert len(contacts) == 1
        assert contacts[0].title == "Controller"

    def test_ai_extracted_does_not_overwrite_api_extracted(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = ContactRepository(session)
            repo.upsert(
                make_contact(company_id, title="CFO", source_method=ContactSourceMethod.API_EXTRACTED)
            )
            skipped = repo.upsert(make_contact(company_id, title="Guess"))
            (contact,) = repo.get_for_company(company_id)

        assert skipped is None
        assert contact.title == "CFO"
        assert contact.source_method == "api_extracted"

    def test_api_extracted_overwrites_ai_extracted(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = ContactRepository(session)
            repo.upsert(make_contact(company_id))
            repo.upsert(
                make_contact(company_id, title="CFO", source_method=ContactSourceMethod.API_EXTRACTED)
            )
            (contact,) = repo.get_for_company(company_id)

        assert contact.source_method == "api_extracted"
        assert contact.title == "CFO"

    def test_comma_separated_emails_become_rows(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = ContactRepository(session)
            contact_id = repo.upsert(
                make_contact(company_id, email="anna@acme.se, erik@acme.se", full_name=None)
            )
            contacts = repo.get_for_company(company_id)

        assert contact_id is not None
        assert {c.email for c in contacts} == {"anna@acme.se", "erik@acme.se"}

    def test_generic_name_is_cleared(self, database):
        company_id = create_company()

        with get_session() as session:
            repo = ContactRepository(session)
            repo.upsert(
                make_contact(company_id, email="info@acme.se", first_name="Info", last_name=None, full_name="Info")
            )
            (contact,) = repo.get_for_company(company_id)

        assert contact.first_name is None
        assert contact.full_name is None
        assert is_generic_contact_name(" HR ")
        assert not is_generic_contact_name("Erik Lindgren")

    def test_profile_url_keyed_contact(self, database):
        company_id = create_company()
        poster = make_contact(
            company_id,
            email=None,
            profile_url="https://www.linkedin.com/in/annaberg",
            full_name="Anna Berg",
            source="linkedin_job_ad",
            source_method=ContactSourceMethod.API_EXTRACTED,
        )

        with get_session() as session:
            repo = ContactRepository(session)
            first = repo.upsert(poster)
            second = repo.upsert(poster)

        assert first == second


class TestAlertRepository:
    def test_create_and_get_recent(self, database):
        alert = SystemAlert(
            source="linkedin",
            stage="fetch",
            severity=AlertSeverity.CRITICAL,
            title="Fetch failed for linkedin",
            message="All 5 LinkedIn searches failed",
            metadata={"run_id": "r-1", "queries": ["Tech/Engineering"]},
            created_at=utc_now(),
        )

        with get_session() as session:
            repo = AlertRepository(session)
            repo.create(alert)
            repo.create(alert.model_copy(update={"source": "indeed"}))

        with get_session() as session:
            repo = AlertRepository(session)
            everything = repo.get_recent()
            linkedin_only = repo.get_recent(source="linkedin")

        assert len(everything) == 2
        assert len(linkedin_only) == 1
        restored = linkedin_only[0]
        assert restored.severity == "critical"
        assert restored.metadata == {"run_id": "r-1", "queries": ["Tech/Engineering"]}


class TestSqlPersistenceGateway:
    def test_full_item_flow(self, database):
        gateway = SqlPersistenceGateway()
        item = make_item(source=SourceType.LINKEDIN)

        async def scenario():
            owner_id = await gateway.find_or_create_owner("Acme AB", "acme.se", "linkedin")
            await gateway.enrich_owner(owner_id, website="https://acme.se")
            record_id = await gateway.create_record(item, owner_id, make_evaluation())
            signal_id = await gateway.create_signal(owner_id, record_id, item, make_evaluation())
            contact_id = await gateway.upsert_contact(make_contact(owner_id, related_record_id=record_id))
            identifiers = await gateway.find_existing_identifiers("linkedin")
            return owner_id, record_id, signal_id, contact_id, identifiers

        owner_id, record_id, signal_id, contact_id, identifiers = asyncio.run(scenario())

        assert all([owner_id, record_id, signal_id, contact_id])
        assert identifiers == {item.external_id, item.url}
        with get_session() as session:
            assert session.get(CompanyModel, owner_id).website == "https://acme.se"
            assert session.get(RecordModel, record_id).source == "linkedin"

    def test_concurrent_calls_are_serialized(self, database):
        gateway = SqlPersistenceGateway()

        async def scenario():
            return await asyncio.gather(
                *(gateway.find_or_create_owner(f"Company {i}", None, "indeed") for i in range(10))
            )

        ids = asyncio.run(scenario())

        assert len(set(ids)) == 10

    def test_delete_records_older_than(self, database):
        gateway = SqlPersistenceGateway()
        company_id = create_company()
        create_record(company_id, make_item("old", posted_at=utc_now() - timedelta(days=40)))

        deleted = asyncio.run(gateway.delete_records_older_than("indeed", 20))

        assert deleted == 1

    def test_write_alert(self, database):
        gateway = SqlPersistenceGateway()

        gateway.write_alert(
            SystemAlert(
                source="indeed",
                stage="pipeline_failure",
                severity=AlertSeverity.CRITICAL,
                title="Pipeline run failed",
                message="database is locked",
            )
        )

        with get_session() as session:
            (alert,) = AlertRepository(session).get_recent()
        assert alert.stage == "pipeline_failure"
