"""Keyword exclusion and place filtering shared by adapters."""

from typing import Iterable, List

from signal_intake.domain.models import NormalizedItem

from .schemas import RawPlace

COMPETITOR_EXCLUSIONS = frozenset(
    [
        "academic work",
        "adecco",
        "manpower",
        "randstad",
        "poolia",
        "tng",
        "proffice",
        "jefferson wells",
        "wise professionals",
        "ants",
        "nexer recruit",
        "incluso",
        "studentconsulting",
        "lernia",
        "barona",
        "uniflex",
        "bemannia",
        "hays",
        "robert half",
        "michael page",
        "kfx",
        "competens",
        "academic search",
        "amendo",
        "arena personal",
        "eventpersonal",
        "human online",
        "kontorsfixarna",
        "inhouse",
        "the place",
        "woow",
        "salesonly",
        "rubino rekrytering",
        "swesale",
        "säljpoolen",
        "made for sales",
        "teknisk säljkraft",
        "fincruit",
    ]
)

RECRUITMENT_CATEGORIES = (
    "rekrytering",
    "bemanning",
    "staffing",
    "recruitment",
    "employment agency",
    "temp agency",
    "personaluthyrning",
)

RECRUITMENT_ROLES = (
    "rekryterare",
    "recruiter",
    "rekryteringskonsult",
    "staffing",
    "bemanning",
    "talent acquisition",
    "headhunter",
)


def matches_exclusion(item: NormalizedItem, exclusion_keywords: Iterable[str]) -> bool:
    """Whether any keyword occurs in the item's title, company or description (case-insensitive)."""
    fields = (item.title.lower(), item.company.lower(), (item.description or "").lower())
    return any(
        keyword and any(keyword.lower() in field for field in fields)
        for keyword in exclusion_keywords
    )


def filter_by_exclusions(
    items: List[NormalizedItem], exclusion_keywords: Iterable[str]
) -> List[NormalizedItem]:
    """Return items that match none of the exclusion keywords, order preserved."""
    keywords = [k.strip().lower() for k in exclusion_keywords if k and k.strip()]
    if not keywords:
        return list(items)
    return [item for item in items if not matches_exclusion(item, keywords)]


def is_recruitment_place(place: RawPlace) -> bool:
    """Whether a place is a known competitor or a staffing/recruitment business.

    A place counts as recruitment by its leads only when every lead holds a
    recruitment title.
    """
    name = place.title.strip().lower()
    if name in COMPETITOR_EXCLUSIONS:
        return True

    category = (place.categoryName or "").lower()
    if any(term in category for term in RECRUITMENT_CATEGORIES):
        return True

    leads = place.leadsEnrichment
    if leads and all(
        any(term in lead.role.lower() for term in RECRUITMENT_ROLES) for lead in leads
    ):
        return True

    return False


def is_eligible_place(place: RawPlace, country_code: str = "SE") -> bool:
    """A lead needs a website, the expected country, and must not be a recruiter."""
    if not place.website or not place.website.strip():
        return False
    if (place.countryCode or "").upper() != country_code.upper():
        return False
    return not is_recruitment_place(place)


def filter_places(places: List[RawPlace], country_code: str = "SE") -> List[RawPlace]:
    """Keep places that are eligible leads, order preserved."""
    return [place for place in places if is_eligible_place(place, country_code)]
