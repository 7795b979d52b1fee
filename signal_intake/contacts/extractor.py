"""Derive contact candidates from an item and its evaluation.

Rules run in order and each may add contacts:

1. Email rule: an application email found by the evaluator becomes an
   ``ai_extracted`` contact, with a name guessed from the address.
2. Poster rule: a LinkedIn posting's recruiter becomes an ``api_extracted``
   contact with a profile URL.
3. Application-email fallback: an Arbetsförmedlingen posting's structured
   application email is used when rule 1 found nothing.
4. Lead rule: every enriched decision maker on a place becomes an
   ``api_extracted`` contact.

Candidates that carry neither an email nor a profile URL are never emitted.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from signal_intake.domain.models import (
    EMAIL_NOT_FOUND,
    ContactSourceMethod,
    EvaluationResult,
    ExtractedContact,
    NormalizedItem,
    SourceType,
)
from signal_intake.logging import get_logger

logger = get_logger(__name__, component="contacts")

_LOCAL_PART_SEPARATORS = re.compile(r"[._-]")


def _capitalize(token: str) -> str:
    return token[:1].upper() + token[1:]


def is_usable_email(email: Optional[str]) -> bool:
    if not email:
        return False
    cleaned = email.strip()
    return bool(cleaned) and cleaned != EMAIL_NOT_FOUND and "@" in cleaned


def split_email_name(email: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Guess (first, last, full) name from the first address in ``email``.

    Example:
        >>> split_email_name("erik.lindgren@example.se")
        ('Erik', 'Lindgren', 'Erik Lindgren')
        >>> split_email_name("info@example.se")
        ('Info', None, 'Info')
    """
    first_address = email.split(",")[0].strip()
    local_part = first_address.split("@")[0]
    tokens = [t for t in _LOCAL_PART_SEPARATORS.split(local_part) if t]

    if len(tokens) >= 2:
        first, last = _capitalize(tokens[0]), _capitalize(tokens[1])
        return first, last, f"{first} {last}"
    if len(tokens) == 1:
        first = _capitalize(tokens[0])
        return first, None, first
    return None, None, None


def split_full_name(name: str) -> Tuple[Optional[str], Optional[str]]:
    parts = name.split()
    if not parts:
        return None, None
    return parts[0], " ".join(parts[1:]) or None


class ContactExtractor:
    """Stateless extractor; one instance can serve a whole run."""

    def extract(
        self,
        item: NormalizedItem,
        evaluation: EvaluationResult,
        company_id: str,
        record_id: Optional[str] = None,
    ) -> List[ExtractedContact]:
        contacts: List[ExtractedContact] = []
        payload = item.raw_payload or {}

        email_contact = self._from_evaluation(item, evaluation, company_id, record_id)
        if email_contact is not None:
            contacts.append(email_contact)

        if item.source == SourceType.LINKEDIN:
            poster = self._from_job_poster(item, payload, company_id, record_id)
            if poster is not None:
                contacts.append(poster)

        if item.source == SourceType.ARBETSFORMEDLINGEN and email_contact is None:
            fallback = self._from_application_details(item, payload, company_id, record_id)
            if fallback is not None:
                contacts.append(fallback)

        if item.source == SourceType.GOOGLE_MAPS:
            contacts.extend(self._from_leads(payload, company_id, record_id))

        logger.debug(
            f"Extracted {len(contacts)} contacts",
            extra={
                "event": "contacts.extract.completed",
                "external_id": item.external_id,
                "count": len(contacts),
            },
        )
        return contacts

    def _from_evaluation(
        self,
        item: NormalizedItem,
        evaluation: EvaluationResult,
        company_id: str,
        record_id: Optional[str],
    ) -> Optional[ExtractedContact]:
        email = evaluation.application_email
        if not is_usable_email(email):
            return None

        first, last, full = split_email_name(email)
        return self._build(
            company_id=company_id,
            first_name=first,
            last_name=last,
            full_name=full,
            email=email,
            source=f"{item.source.value}_job_ad",
            source_method=ContactSourceMethod.AI_EXTRACTED,
            related_record_id=record_id,
        )

    def _from_job_poster(
        self,
        item: NormalizedItem,
        payload: Dict[str, Any],
        company_id: str,
        record_id: Optional[str],
    ) -> Optional[ExtractedContact]:
        name = (payload.get("jobPosterName") or "").strip()
        profile_url = (payload.get("jobPosterProfileUrl") or "").strip()
        if not name or not profile_url:
            return None

        first, last = split_full_name(name)
        return self._build(
            company_id=company_id,
            first_name=first,
            last_name=last,
            full_name=name,
            title=payload.get("jobPosterTitle"),
            profile_url=profile_url,
            source=f"{item.source.value}_job_ad",
            source_method=ContactSourceMethod.API_EXTRACTED,
            related_record_id=record_id,
        )

    def _from_application_details(
        self,
        item: NormalizedItem,
        payload: Dict[str, Any],
        company_id: str,
        record_id: Optional[str],
    ) -> Optional[ExtractedContact]:
        details = payload.get("application_details") or {}
        email = details.get("email") if isinstance(details, dict) else None
        if not is_usable_email(email):
            return None

        first, last, full = split_email_name(email)
        return self._build(
            company_id=company_id,
            first_name=first,
            last_name=last,
            full_name=full,
            email=email,
            source=f"{item.source.value}_job_ad",
            source_method=ContactSourceMethod.API_EXTRACTED,
            related_record_id=record_id,
        )

    def _from_leads(
        self, payload: Dict[str, Any], company_id: str, record_id: Optional[str]
    ) -> List[ExtractedContact]:
        contacts = []
        for lead in payload.get("leadsEnrichment") or []:
            if not isinstance(lead, dict):
                continue
            contact = self._build(
                company_id=company_id,
                first_name=lead.get("firstName"),
                last_name=lead.get("lastName"),
                full_name=lead.get("fullName"),
                title=lead.get("jobTitle") or lead.get("headline"),
                email=lead.get("email"),
                profile_url=lead.get("linkedinProfile"),
                source=SourceType.GOOGLE_MAPS.value,
                source_method=ContactSourceMethod.API_EXTRACTED,
                related_record_id=record_id,
            )
            if contact is not None:
                contacts.append(contact)
        return contacts

    def _build(self, **fields: Any) -> Optional[ExtractedContact]:
        """Construct a contact, returning None when it is not reachable."""
        try:
            return ExtractedContact(**fields)
        except ValidationError:
            logger.debug(
                "Skipping contact without email or profile URL",
                extra={"event": "contacts.extract.skipped", "source": fields.get("source")},
            )
            return None
