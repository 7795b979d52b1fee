"""LinkedIn job adapter: one actor run per search category."""

from typing import Dict, List
from urllib.parse import quote

from signal_intake.config.models import SourceConfig
from signal_intake.domain.models import SourceType
from signal_intake.logging import get_logger

from .apify import ApifyActorAdapter
from .exceptions import AdapterError
from .schemas import RawLinkedInJob

logger = get_logger(__name__, component="adapter")

SWEDEN_GEO_ID = "105117694"
MIN_ACTOR_COUNT = 100

_ENTRY_LEVEL = "(junior OR graduate OR nyexaminerad OR nyexad OR entry-level OR entry level)"

SEARCH_CATEGORIES: Dict[str, str] = {
    "Tech/Engineering": (
        f"{_ENTRY_LEVEL} AND (developer OR utvecklare OR engineer OR ingenjör OR "
        "software OR data OR IT)"
    ),
    "Finance/Business": (
        f"{_ENTRY_LEVEL} AND (ekonom OR finance OR controller OR analyst OR "
        "redovisning OR business)"
    ),
    "Defense/Security": (
        f"{_ENTRY_LEVEL} AND (försvar OR defense OR security OR säkerhet OR cyber)"
    ),
    "Admin/Support": (
        f"{_ENTRY_LEVEL} AND (administratör OR koordinator OR assistant OR "
        "kundtjänst OR support)"
    ),
    "Sales/Marketing": (
        f"{_ENTRY_LEVEL} AND (sälj OR sales OR marknad OR marketing OR "
        "account manager OR kommunikation)"
    ),
}


def build_search_url(keywords: str) -> str:
    """Jobs search URL for Sweden, past 24 hours, entry/associate level, newest first."""
    return (
        "https://www.linkedin.com/jobs/search/"
        f"?keywords={quote(keywords)}&location=Sweden&geoId={SWEDEN_GEO_ID}"
        "&f_TPR=r86400&f_E=2%2C3&sortBy=DD"
    )


class LinkedInAdapter(ApifyActorAdapter):
    """Multi-query source.

    A failing category is logged and skipped. The result is the union of the
    categories that succeeded, which is empty when every category failed.
    """

    SOURCE = SourceType.LINKEDIN
    ACTOR_ID = "hKByXkMQaC5Qt9UMN"

    def search_expressions(self, source_config: SourceConfig) -> Dict[str, str]:
        if source_config.keywords:
            return {"Custom": source_config.keywords}
        return dict(SEARCH_CATEGORIES)

    def build_input(self, keywords: str, source_config: SourceConfig) -> dict:
        return {
            "urls": [build_search_url(keywords)],
            "count": max(source_config.max_items, MIN_ACTOR_COUNT),
            "scrapeCompany": True,
        }

    def fetch(self, source_config: SourceConfig) -> List[RawLinkedInJob]:
        expressions = self.search_expressions(source_config)
        records: List[RawLinkedInJob] = []
        seen_ids = set()
        failures: List[str] = []

        for category, keywords in expressions.items():
            logger.info(
                f"Fetching LinkedIn category {category}",
                extra={"event": "adapter.fetch.started", "source": self.SOURCE.value, "query": category},
            )
            try:
                data = self._run_actor(self.ACTOR_ID, self.build_input(keywords, source_config))
            except AdapterError as e:
                failures.append(category)
                logger.warning(
                    f"LinkedIn category {category} failed: {e}",
                    extra={
                        "event": "adapter.subquery.failed",
                        "source": self.SOURCE.value,
                        "query": category,
                        "error_type": type(e).__name__,
                    },
                )
                continue

            for job in self._parse_records(data, RawLinkedInJob):
                if job.id not in seen_ids:
                    seen_ids.add(job.id)
                    records.append(job)

        if failures and len(failures) == len(expressions):
            logger.error(
                f"All {len(expressions)} LinkedIn searches failed",
                extra={
                    "event": "adapter.fetch.failed",
                    "source": self.SOURCE.value,
                    "query": ", ".join(failures),
                },
            )

        return records
