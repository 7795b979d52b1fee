"""Unit tests for chunked concurrent item processing."""

import asyncio
import logging

import pytest

from signal_intake.domain.models import (
    DEGRADED_CATEGORY,
    ERROR_CATEGORY,
    EvaluationProvenance,
    EvaluationResult,
    NormalizedItem,
    SourceType,
)
from signal_intake.evaluation import Evaluator, build_model_attempts
from signal_intake.pipeline import BatchRunner, chunked
from signal_intake.pipeline.batch import linkedin_company_fields, owner_domain
from tests.helpers import InMemoryGateway


class StubEvaluator:
    """Evaluator double that tracks how many evaluations run at once."""

    def __init__(self, delay=0.01, invalid_ids=(), failing_ids=()):
        self.delay = delay
        self.invalid_ids = set(invalid_ids)
        self.failing_ids = set(failing_ids)
        self.active = 0
        self.max_active = 0
        self.order = []

    async def evaluate(self, item):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.order.append(item.external_id)
        try:
            await asyncio.sleep(self.delay)
            if item.external_id in self.failing_ids:
                raise RuntimeError("evaluator crashed")
        finally:
            self.active -= 1

        valid = item.external_id not in self.invalid_ids
        return EvaluationResult(
            is_valid=valid,
            score=80 if valid else 20,
            category="IT/Teknik",
            application_email="jobs@acme.se",
        )


class HangingClient:
    """Chat client whose completions never return."""

    async def complete(self, *, system_prompt, user_prompt, model, temperature):
        await asyncio.sleep(3600)


class SlowRecordGateway(InMemoryGateway):
    def __init__(self, slow_ids=()):
        super().__init__()
        self.slow_ids = set(slow_ids)

    async def create_record(self, item, owner_id, evaluation):
        if item.external_id in self.slow_ids:
            await asyncio.sleep(1)
        return await super().create_record(item, owner_id, evaluation)


def make_item(external_id, source=SourceType.INDEED, company="Acme AB", raw_payload=None, url=None):
    return NormalizedItem(
        external_id=external_id,
        title=f"Junior Developer {external_id}",
        company=company,
        url=url or f"https://example.se/jobs/{external_id}",
        source=source,
        raw_payload=raw_payload or {},
    )


def make_items(count):
    return [make_item(str(i)) for i in range(1, count + 1)]


class TestChunked:
    def test_splits_into_consecutive_chunks(self):
        chunks = chunked(list(range(7)), 3)

        assert [len(c) for c in chunks] == [3, 3, 1]
        assert chunks[2] == [6]

    def test_empty(self):
        assert chunked([], 3) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestOwnerHelpers:
    def test_place_domain_from_website(self):
        item = make_item(
            "p",
            source=SourceType.GOOGLE_MAPS,
            url="https://www.lindqvistadvokat.se/kontakt",
        )

        assert owner_domain(item) == "lindqvistadvokat.se"

    def test_job_domain_is_guessed(self):
        assert owner_domain(make_item("1", company="Volvo Cars AB")) == "volvo-cars.se"

    def test_linkedin_company_fields(self):
        item = make_item(
            "1",
            source=SourceType.LINKEDIN,
            raw_payload={
                "companyLinkedinUrl": "https://www.linkedin.com/company/acme",
                "companyWebsite": "",
                "companyDescription": None,
                "companyEmployeesCount": 120,
            },
        )

        assert linkedin_company_fields(item) == {
            "linkedin_url": "https://www.linkedin.com/company/acme",
            "employee_count": 120,
        }


class TestBatchRunner:
    def test_invalid_concurrency_limit(self):
        with pytest.raises(ValueError):
            BatchRunner(StubEvaluator(), InMemoryGateway(), concurrency_limit=0)

    def test_respects_concurrency_limit(self):
        evaluator = StubEvaluator()
        runner = BatchRunner(evaluator, InMemoryGateway(), concurrency_limit=3)

        outcomes = asyncio.run(runner.run(make_items(7)))

        assert len(outcomes) == 7
        assert evaluator.max_active == 3
        assert [o.item.external_id for o in outcomes] == [str(i) for i in range(1, 8)]

    def test_limit_override_per_run(self):
        evaluator = StubEvaluator()
        runner = BatchRunner(evaluator, InMemoryGateway(), concurrency_limit=3)

        asyncio.run(runner.run(make_items(4), concurrency_limit=1))

        assert evaluator.max_active == 1

    def test_logs_progress_per_chunk(self, caplog):
        runner = BatchRunner(StubEvaluator(), InMemoryGateway(), concurrency_limit=3)

        with caplog.at_level(logging.INFO, logger="signal_intake.pipeline.batch"):
            asyncio.run(runner.run(make_items(7)))

        progress = [r for r in caplog.records if getattr(r, "event", None) == "pipeline.batch.progress"]
        assert [r.completed for r in progress] == [3, 6, 7]
        assert progress[-1].chunk_count == 3
        assert progress[-1].success_ratio == 1.0

    def test_successful_outcome_has_ids(self):
        gateway = InMemoryGateway()
        runner = BatchRunner(StubEvaluator(), gateway)

        (outcome,) = asyncio.run(runner.run([make_item("1")]))

        assert outcome.success is True
        assert outcome.company_id == "company-1"
        assert outcome.record_id == "record-1"
        assert outcome.signal_id == "signal-1"
        assert outcome.contacts_created == 1
        assert gateway.calls == [
            "find_or_create_owner",
            "create_record",
            "create_signal",
            "upsert_contact",
        ]

    def test_persistence_failure_is_isolated(self):
        gateway = InMemoryGateway(
            failures={"create_record": lambda item, *rest: item.external_id == "3"}
        )
        runner = BatchRunner(StubEvaluator(), gateway, concurrency_limit=3)

        outcomes = asyncio.run(runner.run(make_items(5)))

        succeeded = [o for o in outcomes if o.success]
        failed = [o for o in outcomes if not o.success]
        assert len(succeeded) == 4
        assert len(failed) == 1

        error = failed[0]
        assert error.item.external_id == "3"
        assert error.error == "RuntimeError: create_record failed"
        assert error.evaluation.category == ERROR_CATEGORY
        assert error.evaluation.provenance is EvaluationProvenance.ERROR
        assert error.company_id is not None
        assert error.record_id is None
        assert len(gateway.records) == 4

    def test_evaluator_exception_becomes_error_outcome(self):
        runner = BatchRunner(StubEvaluator(failing_ids={"2"}), InMemoryGateway())

        outcomes = asyncio.run(runner.run(make_items(3)))

        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[1].error == "RuntimeError: evaluator crashed"
        assert outcomes[1].company_id is None

    def test_item_timeout(self):
        runner = BatchRunner(StubEvaluator(), SlowRecordGateway(slow_ids={"1"}), item_timeout=0.05)

        outcomes = asyncio.run(runner.run(make_items(2)))

        assert outcomes[0].success is False
        assert outcomes[0].error == "Timed out after 0.05 seconds"
        assert outcomes[0].evaluation.category == ERROR_CATEGORY
        assert outcomes[0].company_id is not None
        assert outcomes[1].success is True

    def test_stalled_models_degrade_instead_of_timing_out(self):
        gateway = InMemoryGateway()
        evaluator = Evaluator(
            job_attempts=build_model_attempts("primary", "fallback", HangingClient()),
            attempt_timeout=0.1,
        )
        runner = BatchRunner(evaluator, gateway, item_timeout=0.2)

        (outcome,) = asyncio.run(runner.run([make_item("1")]))

        assert outcome.success is True
        assert outcome.evaluation.category == DEGRADED_CATEGORY
        assert outcome.evaluation.provenance is EvaluationProvenance.DEGRADED
        assert outcome.record_id is not None
        assert outcome.signal_id is not None
        assert len(gateway.records) == 1

    def test_invalid_evaluation_is_still_persisted(self):
        gateway = InMemoryGateway()
        runner = BatchRunner(StubEvaluator(invalid_ids={"1"}), gateway)

        (outcome,) = asyncio.run(runner.run([make_item("1")]))

        assert outcome.success is True
        assert outcome.is_valid is False
        assert len(gateway.records) == 1

    def test_contact_failure_does_not_fail_item(self):
        gateway = InMemoryGateway(failures={"upsert_contact": lambda *a: True})
        runner = BatchRunner(StubEvaluator(), gateway)

        (outcome,) = asyncio.run(runner.run([make_item("1")]))

        assert outcome.success is True
        assert outcome.contacts_created == 0

    def test_linkedin_owner_is_enriched(self):
        gateway = InMemoryGateway()
        runner = BatchRunner(StubEvaluator(), gateway)
        item = make_item(
            "1",
            source=SourceType.LINKEDIN,
            raw_payload={"companyWebsite": "https://acme.se", "companyEmployeesCount": 40},
        )

        (outcome,) = asyncio.run(runner.run([item]))

        owner = gateway.owners[outcome.company_id]
        assert owner["website"] == "https://acme.se"
        assert owner["employee_count"] == 40

    def test_enrichment_failure_is_ignored(self):
        gateway = InMemoryGateway(failures={"enrich_owner": lambda *a, **k: True})
        runner = BatchRunner(StubEvaluator(), gateway)
        item = make_item("1", source=SourceType.LINKEDIN, raw_payload={"companyWebsite": "https://acme.se"})

        (outcome,) = asyncio.run(runner.run([item]))

        assert outcome.success is True
        assert outcome.record_id is not None

    def test_same_company_shares_owner(self):
        gateway = InMemoryGateway()
        runner = BatchRunner(StubEvaluator(), gateway)

        outcomes = asyncio.run(runner.run(make_items(2)))

        assert outcomes[0].company_id == outcomes[1].company_id
        assert len(gateway.owners) == 1
