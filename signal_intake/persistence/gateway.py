"""Async persistence boundary consumed by the pipeline.

``PersistenceGateway`` is the contract the pipeline depends on.
``SqlPersistenceGateway`` implements it over the synchronous repositories,
running each call in a worker thread with its own session and transaction.
It also serves as the alert sink, so alert writes share its serialization.
"""

import asyncio
import threading
from typing import Any, Callable, Optional, Protocol, Set, TypeVar

from sqlalchemy.orm import Session

from signal_intake.domain.models import (
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SystemAlert,
)
from signal_intake.utils.timestamps import days_ago

from .database import get_session
from .repositories import (
    AlertRepository,
    CompanyRepository,
    ContactRepository,
    RecordRepository,
    SignalRepository,
)

T = TypeVar("T")


class PersistenceGateway(Protocol):
    """Storage operations used by deduplication and the batch runner."""

    async def find_or_create_owner(self, name: str, domain: Optional[str], source: str) -> str:
        ...

    async def enrich_owner(self, owner_id: str, **fields: Any) -> None:
        ...

    async def find_existing_identifiers(self, source: str) -> Set[str]:
        ...

    async def create_record(
        self, item: NormalizedItem, owner_id: str, evaluation: EvaluationResult
    ) -> str:
        ...

    async def create_signal(
        self,
        owner_id: str,
        record_id: str,
        item: NormalizedItem,
        evaluation: EvaluationResult,
    ) -> str:
        ...

    async def upsert_contact(self, contact: ExtractedContact) -> Optional[str]:
        ...

    async def delete_records_older_than(self, source: str, days: int) -> int:
        ...


class SqlPersistenceGateway:
    """PersistenceGateway over SQLAlchemy. Requires ``init_database`` to have run.

    Args:
        serialize: Run one call at a time. SQLite accepts a single writer and an
            in-memory database shares one connection, so this defaults to True.
    """

    def __init__(self, serialize: bool = True) -> None:
        self._lock: Optional[threading.Lock] = threading.Lock() if serialize else None

    async def _run(self, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._in_session, work)

    def _in_session(self, work: Callable[[Session], T]) -> T:
        if self._lock is None:
            with get_session() as session:
                return work(session)
        with self._lock:
            with get_session() as session:
                return work(session)

    async def find_or_create_owner(self, name: str, domain: Optional[str], source: str) -> str:
        return await self._run(
            lambda session: CompanyRepository(session).find_or_create(name, domain, source)
        )

    async def enrich_owner(self, owner_id: str, **fields: Any) -> None:
        await self._run(lambda session: CompanyRepository(session).enrich(owner_id, **fields))

    async def find_existing_identifiers(self, source: str) -> Set[str]:
        return await self._run(lambda session: RecordRepository(session).get_identifiers(source))

    async def create_record(
        self, item: NormalizedItem, owner_id: str, evaluation: EvaluationResult
    ) -> str:
        return await self._run(
            lambda session: RecordRepository(session).create(item, owner_id, evaluation)
        )

    async def create_signal(
        self,
        owner_id: str,
        record_id: str,
        item: NormalizedItem,
        evaluation: EvaluationResult,
    ) -> str:
        return await self._run(
            lambda session: SignalRepository(session).create(owner_id, record_id, item, evaluation)
        )

    async def upsert_contact(self, contact: ExtractedContact) -> Optional[str]:
        return await self._run(lambda session: ContactRepository(session).upsert(contact))

    async def delete_records_older_than(self, source: str, days: int) -> int:
        cutoff = days_ago(days)
        return await self._run(
            lambda session: RecordRepository(session).delete_older_than(source, cutoff)
        )

    def write_alert(self, alert: SystemAlert) -> None:
        """Alert sink hook: store ``alert`` in ``system_alerts``. Synchronous."""
        self._in_session(lambda session: AlertRepository(session).create(alert))
