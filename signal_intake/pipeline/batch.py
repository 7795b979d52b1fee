"""Chunked concurrent processing of deduplicated items.

Items are split into consecutive chunks of at most ``concurrency_limit``.
Items inside a chunk run concurrently; chunks run one after another. A
failure is confined to its own item and turned into an error outcome.
"""

import asyncio
from typing import Any, Dict, List, Optional

from signal_intake.contacts import ContactExtractor
from signal_intake.domain.models import EvaluationResult, NormalizedItem, SourceType
from signal_intake.evaluation import Evaluator
from signal_intake.logging import get_logger
from signal_intake.logging.context import log_context
from signal_intake.persistence.gateway import PersistenceGateway
from signal_intake.utils.domains import extract_domain, guess_company_domain

from .models import ProcessedOutcome

logger = get_logger(__name__, component="batch")

DEFAULT_CONCURRENCY_LIMIT = 3

# LinkedIn raw payload field -> companies column
_LINKEDIN_COMPANY_FIELDS = {
    "companyLinkedinUrl": "linkedin_url",
    "companyWebsite": "website",
    "companyDescription": "description",
    "companyEmployeesCount": "employee_count",
}


def chunked(items: List[Any], size: int) -> List[List[Any]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got: {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


def owner_domain(item: NormalizedItem) -> Optional[str]:
    """Website host for places, a guessed Swedish domain for job postings."""
    if item.source == SourceType.GOOGLE_MAPS:
        return extract_domain(item.application_url or item.url) or None
    return guess_company_domain(item.company)


def linkedin_company_fields(item: NormalizedItem) -> Dict[str, Any]:
    payload = item.raw_payload or {}
    return {
        column: payload[key]
        for key, column in _LINKEDIN_COMPANY_FIELDS.items()
        if payload.get(key) not in (None, "")
    }


class BatchRunner:
    """Runs evaluate → persist → extract contacts for every item.

    Args:
        evaluator: Produces the evaluation for each item
        gateway: Storage for owners, records, signals, and contacts
        extractor: Derives contacts from each persisted item
        concurrency_limit: Items processed concurrently per chunk
        item_timeout: Upper bound in seconds for persisting one evaluated item and
            its contacts, or None. Evaluation is bounded by the evaluator's
            per-attempt timeout.
    """

    def __init__(
        self,
        evaluator: Evaluator,
        gateway: PersistenceGateway,
        extractor: Optional[ContactExtractor] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        item_timeout: Optional[float] = None,
    ) -> None:
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got: {concurrency_limit}")
        self.evaluator = evaluator
        self.gateway = gateway
        self.extractor = extractor or ContactExtractor()
        self.concurrency_limit = concurrency_limit
        self.item_timeout = item_timeout

    async def run(
        self, items: List[NormalizedItem], concurrency_limit: Optional[int] = None
    ) -> List[ProcessedOutcome]:
        """Process ``items`` and return one outcome per item, in input order."""
        limit = concurrency_limit or self.concurrency_limit
        chunks = chunked(items, limit)
        outcomes: List[ProcessedOutcome] = []
        succeeded = 0

        for index, chunk in enumerate(chunks, start=1):
            chunk_outcomes = await asyncio.gather(*(self._run_item(item) for item in chunk))
            outcomes.extend(chunk_outcomes)
            succeeded += sum(1 for outcome in chunk_outcomes if outcome.success)

            logger.info(
                f"Processed {len(outcomes)}/{len(items)} items",
                extra={
                    "event": "pipeline.batch.progress",
                    "chunk": index,
                    "chunk_count": len(chunks),
                    "completed": len(outcomes),
                    "total": len(items),
                    "success_ratio": round(succeeded / len(outcomes), 3),
                },
            )

        return outcomes

    async def _run_item(self, item: NormalizedItem) -> ProcessedOutcome:
        outcome = ProcessedOutcome(item=item, evaluation=EvaluationResult.error("Not evaluated"))

        with log_context(external_id=item.external_id):
            try:
                outcome.evaluation = await self.evaluator.evaluate(item)
                if self.item_timeout:
                    await asyncio.wait_for(self._persist(item, outcome), timeout=self.item_timeout)
                else:
                    await self._persist(item, outcome)
            except asyncio.TimeoutError:
                return self._failed(outcome, f"Timed out after {self.item_timeout} seconds")
            except Exception as e:
                return self._failed(outcome, f"{type(e).__name__}: {e}")

        return outcome

    async def _persist(self, item: NormalizedItem, outcome: ProcessedOutcome) -> None:
        evaluation = outcome.evaluation

        source = item.source.value
        outcome.company_id = await self.gateway.find_or_create_owner(
            item.company, owner_domain(item), source
        )

        if item.source == SourceType.LINKEDIN:
            await self._enrich_owner(item, outcome.company_id)

        outcome.record_id = await self.gateway.create_record(item, outcome.company_id, evaluation)
        outcome.signal_id = await self.gateway.create_signal(
            outcome.company_id, outcome.record_id, item, evaluation
        )

        contacts = self.extractor.extract(item, evaluation, outcome.company_id, outcome.record_id)
        for contact in contacts:
            try:
                contact_id = await self.gateway.upsert_contact(contact)
            except Exception as e:
                logger.warning(
                    f"Contact upsert failed for item {item.external_id}: {e}",
                    extra={
                        "event": "pipeline.contact.failed",
                        "company_id": outcome.company_id,
                        "error_type": type(e).__name__,
                    },
                )
                continue
            if contact_id is not None:
                outcome.contacts_created += 1

        logger.debug(
            f"Item {item.external_id} persisted",
            extra={
                "event": "pipeline.item.completed",
                "record_id": outcome.record_id,
                "score": evaluation.score,
                "is_valid": evaluation.is_valid,
                "contacts_created": outcome.contacts_created,
            },
        )

    async def _enrich_owner(self, item: NormalizedItem, company_id: str) -> None:
        fields = linkedin_company_fields(item)
        if not fields:
            return
        try:
            await self.gateway.enrich_owner(company_id, **fields)
        except Exception as e:
            logger.warning(
                f"Company enrichment failed for {item.company}: {e}",
                extra={
                    "event": "pipeline.company.enrich_failed",
                    "company_id": company_id,
                    "error_type": type(e).__name__,
                },
            )

    def _failed(self, outcome: ProcessedOutcome, message: str) -> ProcessedOutcome:
        item = outcome.item
        logger.error(
            f"Processing failed for item {item.external_id}: {message}",
            extra={
                "event": "pipeline.item.failed",
                "title": item.title,
                "company": item.company,
                "error": message,
            },
        )
        return ProcessedOutcome(
            item=item,
            evaluation=EvaluationResult.error(message),
            company_id=outcome.company_id,
            record_id=outcome.record_id,
            signal_id=outcome.signal_id,
            success=False,
            error=message,
            contacts_created=outcome.contacts_created,
        )
