"""Pure per-source mapping from raw origin records to NormalizedItem.

Each normalizer takes one validated raw record and returns the canonical item.
No I/O happens here, so the functions are safe to call from tests and from
any thread.
"""

import html
import re
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel

from signal_intake.domain.models import NormalizedItem, SourceType
from signal_intake.utils.timestamps import parse_iso_datetime

from .schemas import RawAFJob, RawIndeedJob, RawLinkedInJob, RawPlace


def clean_html(html_text: Optional[str]) -> str:
    """Strip tags and entities from formatted text, keeping paragraph breaks."""
    if not html_text:
        return ""

    text = html.unescape(html_text)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</p>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _first(values: List[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def normalize_indeed(raw: RawIndeedJob) -> NormalizedItem:
    return NormalizedItem(
        external_id=raw.id,
        title=raw.positionName,
        company=raw.company,
        location=raw.location or "",
        description=raw.description or "",
        url=raw.url,
        posted_at=parse_iso_datetime(raw.postingDateParsed) or parse_iso_datetime(raw.postedAt),
        job_type=_first(raw.jobType),
        salary=raw.salary or None,
        application_url=raw.externalApplyLink or None,
        source=SourceType.INDEED,
        raw_payload=raw.model_dump(mode="json"),
    )


def normalize_linkedin(raw: RawLinkedInJob) -> NormalizedItem:
    return NormalizedItem(
        external_id=raw.id,
        title=raw.title,
        company=raw.companyName,
        location=raw.location or "",
        description=raw.descriptionText or "",
        url=raw.link,
        posted_at=parse_iso_datetime(raw.postedAt),
        job_type=raw.employmentType or None,
        salary=_first(raw.salaryInfo),
        application_url=raw.applyUrl or None,
        source=SourceType.LINKEDIN,
        raw_payload=raw.model_dump(mode="json"),
    )


def normalize_arbetsformedlingen(raw: RawAFJob) -> NormalizedItem:
    """Map a job search hit. Location falls back municipality → region → country → Sweden."""
    address = raw.workplace_address
    location = "Sweden"
    if address is not None:
        location = address.municipality or address.region or address.country or "Sweden"

    description = ""
    if raw.description is not None:
        description = raw.description.text or clean_html(raw.description.text_formatted)

    details = raw.application_details
    application_url = (details.url if details else None) or raw.webpage_url

    job_type = None
    if raw.employment_type and raw.employment_type.label:
        job_type = raw.employment_type.label
    elif raw.duration and raw.duration.label:
        job_type = raw.duration.label

    url = raw.webpage_url or f"https://arbetsformedlingen.se/platsbanken/annonser/{raw.id}"

    return NormalizedItem(
        external_id=raw.id,
        title=raw.headline,
        company=raw.employer.name or "",
        location=location,
        description=description,
        url=url,
        posted_at=parse_iso_datetime(raw.publication_date),
        job_type=job_type,
        salary=raw.salary_type.label if raw.salary_type else None,
        application_url=application_url or None,
        source=SourceType.ARBETSFORMEDLINGEN,
        raw_payload=raw.model_dump(mode="json"),
    )


def describe_place(raw: RawPlace) -> str:
    """Plain-text summary of a place, used as the item description."""
    parts = []
    if raw.categoryName:
        parts.append(f"Category: {raw.categoryName}")
    if raw.address:
        parts.append(f"Address: {raw.address}")
    if raw.reviewsCount is not None:
        rating = f", rating {raw.totalScore}" if raw.totalScore is not None else ""
        parts.append(f"Reviews: {raw.reviewsCount}{rating}")
    if raw.website:
        parts.append(f"Website: {raw.website}")
    phone = raw.phone or raw.phoneUnformatted
    if phone:
        parts.append(f"Phone: {phone}")
    return "\n".join(parts)


def normalize_google_maps(raw: RawPlace) -> NormalizedItem:
    """Map a place. The place itself is the company and its website is the item url."""
    url = raw.website or raw.url or f"https://www.google.com/maps/place/?q=place_id:{raw.placeId}"
    return NormalizedItem(
        external_id=raw.placeId,
        title=raw.title,
        company=raw.title,
        location=raw.city or raw.address or "",
        description=describe_place(raw),
        url=url,
        posted_at=None,
        job_type=raw.categoryName or None,
        salary=None,
        application_url=raw.website or None,
        source=SourceType.GOOGLE_MAPS,
        raw_payload=raw.model_dump(mode="json"),
    )


NORMALIZERS: Dict[SourceType, Callable[[BaseModel], NormalizedItem]] = {
    SourceType.INDEED: normalize_indeed,
    SourceType.LINKEDIN: normalize_linkedin,
    SourceType.ARBETSFORMEDLINGEN: normalize_arbetsformedlingen,
    SourceType.GOOGLE_MAPS: normalize_google_maps,
}


def normalize_raw(source: SourceType, raw: BaseModel) -> NormalizedItem:
    """Dispatch ``raw`` to the normalizer registered for ``source``.

    Raises:
        KeyError: If no normalizer is registered for the source
        ValidationError: If the mapped record violates NormalizedItem rules
    """
    return NORMALIZERS[SourceType(source)](raw)
