"""Prompt templates and strict response schemas for AI evaluation.

Two prompts exist: one for job postings and one for scoring companies found
as place leads. Each pairs a system prompt, a user-prompt renderer, a response
schema and a mapper from the validated response to an EvaluationResult.
"""

from dataclasses import dataclass
from typing import Callable, Type

from pydantic import BaseModel, ConfigDict, Field

from signal_intake.domain.models import EvaluationResult, NormalizedItem

JOB_CATEGORIES = [
    "Ekonom",
    "Ingenjör",
    "IT/Teknik",
    "Kundtjänst",
    "Administration",
    "Sälj/Marknad",
    "Logistik",
    "HR",
    "Juridik",
    "Säkerhet/Försvar",
    "Other",
]

JOB_SYSTEM_PROMPT = f"""You screen job postings for a recruitment agency that places early-to-mid career
white-collar candidates (0 to 8 years of experience) in Sweden.

Work in two stages.

STAGE 1: HARD REJECTIONS. Set isValid=false and score=0 when the posting is any of:
1. Clinical or patient care work (undersköterska, sjuksköterska, läkare, vårdbiträde, personlig assistent).
2. Teaching or pedagogy (lärare, förskollärare, pedagog).
3. Restaurant, bar or hospitality floor work (kock, servitör, bartender).
4. Cleaning or manual labour (städare, lokalvård, snickare), unless the role is engineering or management.
5. Senior leadership (Director, Head of, VP, C-level, Principal, Staff engineer).
6. Unpaid or study positions (praktik, LIA, exjobb, thesis work, trainee programmes).
7. Postings published by a recruitment or staffing agency.
8. Postings that decline contact from recruitment agencies.

STAGE 2: ANALYSIS, only for postings that pass stage 1.
A. Experience. Anything whose minimum requirement is 8 years or less is valid, including
   ranges that overlap 0 to 8 (for example "5-10 years"). Reject only when the minimum is 9+ years.
   No stated number means valid. Record the check in experience_logic, for example
   "Step 1: Found 5 years. Step 2: 5 < 8 -> PASS".
B. Boost toward 90-100 for degree requirements, engineering or AI/ML specialisations,
   defence, security and intelligence employers, and well known technology companies.
   Combined signals raise the score further.
C. Score 80-100 for office-based roles in finance, tech, legal, consulting, logistics,
   energy, industry, marketing and sales. Office, technical and administrative roles are valid
   at any employer.
D. Scoring guide: 95-100 exceptional, 87-94 strong, 75-86 good, 50-74 acceptable, 0 rejected.
   When uncertain, favour inclusion and the higher score.
E. Assign exactly one category from: {", ".join(JOB_CATEGORIES)}.

Extract any application email address from the description, otherwise return "Email Not Found".
Return ONLY valid JSON, without markdown or commentary."""

COMPANY_SYSTEM_PROMPT = """You qualify companies as prospects for a Swedish recruitment agency that places
early-career white-collar candidates (0 to 8 years of experience).

Assign one holistic score from 0 to 100, where 50 or more means a valid prospect.

1. ROLE FIT (most important). Does the company plausibly employ office-based professionals
   in junior to mid-level roles (finance, IT, engineering, marketing, sales, HR, legal,
   operations, analysis, coordination)? Judge the specific company, not its sector label.
   Hospitals, schools and factories often employ administrative and technical staff.
   Score lower only when the business is mostly frontline or manual work.
2. SIZE SIGNALS (secondary). Multiple locations, a corporate website and a clear
   organisation raise confidence. Review counts are a weak signal.
3. DISQUALIFICATION. Only an exact name match with a known staffing competitor
   (Academic Work, Adecco, Manpower, Randstad, Poolia, and similar) sets isValid=false
   with a score of 30 or lower.

Lean toward inclusion when uncertain. Respond ONLY with valid JSON:
{
  "isValid": boolean,
  "score": number,
  "reasoning": "how role fit, size and disqualification affected the score",
  "industry_category": "best matching business category",
  "size_estimate": "Large/Medium/Small/Unknown"
}"""


class JobEvaluationResponse(BaseModel):
    """Expected JSON shape for a job evaluation. Wrong types are rejected, never coerced."""

    model_config = ConfigDict(strict=True, extra="ignore")

    experience_logic: str
    isValid: bool
    score: float = Field(..., ge=0, le=100)
    category: str
    experience: str
    reasoning: str
    applicationEmail: str
    duration: str


class CompanyScoringResponse(BaseModel):
    """Expected JSON shape for a company score."""

    model_config = ConfigDict(strict=True, extra="ignore")

    isValid: bool
    score: float = Field(..., ge=0, le=100)
    reasoning: str
    industry_category: str
    size_estimate: str


def render_job_prompt(item: NormalizedItem) -> str:
    return f"""Job Title: {item.title}
Company: {item.company}
Description: {item.description}

Analyze the job posting above and decide whether it suits candidates with 0-8 years of experience.

Return ONLY a JSON object in this exact format:
{{
  "experience_logic": "Step 1: exact years found (or 'None'). Step 2: confirm whether < 8.",
  "isValid": boolean,
  "score": number,
  "category": "one of: {", ".join(JOB_CATEGORIES)}",
  "experience": "number of years required, or empty string",
  "reasoning": "brief explanation of the final score",
  "applicationEmail": "email address(es) found, or 'Email Not Found'",
  "duration": "employment form and extent, or empty string"
}}"""


def render_company_prompt(item: NormalizedItem) -> str:
    payload = item.raw_payload or {}
    leads = payload.get("leadsEnrichment") or []
    if leads:
        lead_lines = "\n".join(
            f"  - {lead.get('fullName') or 'Unknown'}: "
            f"{lead.get('jobTitle') or lead.get('headline') or 'No title'}"
            for lead in leads[:3]
        )
    else:
        lead_lines = "  None found"

    return f"""Company Name: {item.company}
Category: {payload.get('categoryName') or 'Unknown'}
Location: {payload.get('city') or 'Unknown'}, {payload.get('address') or ''}
Reviews: {payload.get('reviewsCount') or 0}
Website: {payload.get('website') or item.url}

Decision Makers Found:
{lead_lines}

Evaluate this company as a prospect for placing early-career candidates (0-8 years experience) in white-collar roles."""


def _job_result(response: JobEvaluationResponse, model: str) -> EvaluationResult:
    return EvaluationResult(
        is_valid=response.isValid,
        score=round(response.score),
        category=response.category,
        experience=response.experience,
        experience_logic=response.experience_logic,
        reasoning=response.reasoning,
        application_email=response.applicationEmail,
        duration=response.duration,
        model=model,
    )


def _company_result(response: CompanyScoringResponse, model: str) -> EvaluationResult:
    return EvaluationResult(
        is_valid=response.isValid,
        score=round(response.score),
        category=response.industry_category,
        experience_logic=f"Company size: {response.size_estimate}",
        reasoning=response.reasoning,
        duration=response.size_estimate,
        model=model,
    )


@dataclass(frozen=True)
class EvaluationPrompt:
    """Everything needed to ask a model about one kind of item and read its answer."""

    name: str
    system_prompt: str
    render: Callable[[NormalizedItem], str]
    response_schema: Type[BaseModel]
    to_result: Callable[[BaseModel, str], EvaluationResult]


JOB_EVALUATION_PROMPT = EvaluationPrompt(
    name="job_evaluation",
    system_prompt=JOB_SYSTEM_PROMPT,
    render=render_job_prompt,
    response_schema=JobEvaluationResponse,
    to_result=_job_result,
)

COMPANY_SCORING_PROMPT = EvaluationPrompt(
    name="company_scoring",
    system_prompt=COMPANY_SYSTEM_PROMPT,
    render=render_company_prompt,
    response_schema=CompanyScoringResponse,
    to_result=_company_result,
)
