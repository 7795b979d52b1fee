"""Lenient raw-record schemas for each source origin.

Every origin returns loosely typed JSON. These models keep unknown keys,
coerce numeric identifiers to strings, and require only the handful of fields
an item cannot exist without. Records that fail validation are dropped by the
adapter rather than failing the whole fetch.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawRecord(BaseModel):
    """Common configuration for raw origin records."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True, populate_by_name=True)


def _require_text(v: Optional[str]) -> str:
    if v is None or not str(v).strip():
        raise ValueError("Field cannot be empty")
    return str(v).strip()


class RawIndeedJob(RawRecord):
    """Job record returned by the Indeed scraper actor."""

    id: str
    positionName: str
    company: str
    location: Optional[str] = None
    description: Optional[str] = None
    url: str
    externalApplyLink: Optional[str] = None
    postingDateParsed: Optional[str] = None
    postedAt: Optional[str] = None
    jobType: List[str] = Field(default_factory=list)
    salary: Optional[str] = None

    @field_validator("id", "positionName", "company", "url")
    @classmethod
    def required_text(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("jobType", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class RawLinkedInJob(RawRecord):
    """Job record returned by the LinkedIn jobs actor."""

    id: str
    title: str
    companyName: str
    location: Optional[str] = None
    descriptionText: Optional[str] = None
    link: str
    employmentType: Optional[str] = None
    salaryInfo: List[str] = Field(default_factory=list)
    postedAt: Optional[str] = None
    seniorityLevel: Optional[str] = None
    jobPosterName: Optional[str] = None
    jobPosterTitle: Optional[str] = None
    jobPosterProfileUrl: Optional[str] = None
    companyLinkedinUrl: Optional[str] = None
    companyWebsite: Optional[str] = None
    companyDescription: Optional[str] = None
    companyEmployeesCount: Optional[int] = None
    applyUrl: Optional[str] = None

    @field_validator("id", "title", "companyName", "link")
    @classmethod
    def required_text(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("salaryInfo", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class AFEmployer(RawRecord):
    name: Optional[str] = None
    organization_number: Optional[str] = None


class AFWorkplaceAddress(RawRecord):
    municipality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


class AFDescription(RawRecord):
    text: Optional[str] = None
    text_formatted: Optional[str] = None


class AFApplicationDetails(RawRecord):
    url: Optional[str] = None
    email: Optional[str] = None


class AFLabel(RawRecord):
    label: Optional[str] = None


class RawAFJob(RawRecord):
    """Hit returned by the Arbetsförmedlingen job search API."""

    id: str
    external_id: Optional[str] = None
    headline: str
    employer: AFEmployer
    workplace_address: Optional[AFWorkplaceAddress] = None
    description: Optional[AFDescription] = None
    webpage_url: Optional[str] = None
    application_details: Optional[AFApplicationDetails] = None
    publication_date: Optional[str] = None
    application_deadline: Optional[str] = None
    employment_type: Optional[AFLabel] = None
    salary_type: Optional[AFLabel] = None
    duration: Optional[AFLabel] = None
    number_of_vacancies: Optional[int] = None
    removed: bool = False

    @field_validator("id", "headline")
    @classmethod
    def required_text(cls, v: str) -> str:
        return _require_text(v)


class RawAFSearchResponse(RawRecord):
    """Envelope of one Arbetsförmedlingen search page."""

    total: Optional[dict] = None
    hits: list = Field(default_factory=list)

    @field_validator("hits", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []


class RawLead(RawRecord):
    """Decision-maker enrichment attached to a place."""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    fullName: Optional[str] = None
    jobTitle: Optional[str] = None
    headline: Optional[str] = None
    email: Optional[str] = None
    linkedinProfile: Optional[str] = None

    @property
    def role(self) -> str:
        return self.jobTitle or self.headline or ""


class RawPlace(RawRecord):
    """Place record returned by the Google Maps scraper actor."""

    title: str
    website: Optional[str] = None
    categoryName: Optional[str] = None
    placeId: str
    url: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    countryCode: Optional[str] = None
    reviewsCount: Optional[int] = None
    phone: Optional[str] = None
    phoneUnformatted: Optional[str] = None
    totalScore: Optional[float] = None
    leadsEnrichment: List[RawLead] = Field(default_factory=list)

    @field_validator("title", "placeId")
    @classmethod
    def required_text(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("leadsEnrichment", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return v or []
