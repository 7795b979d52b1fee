"""Indeed job adapter backed by a hosted scraper actor."""

from typing import List

from signal_intake.config.models import SourceConfig
from signal_intake.domain.models import SourceType
from signal_intake.logging import get_logger

from .apify import ApifyActorAdapter
from .exceptions import AdapterError, SourceFetchError
from .schemas import RawIndeedJob

logger = get_logger(__name__, component="adapter")

DEFAULT_KEYWORDS = (
    "nyexad OR nyexaminerad OR junior OR graduate OR trainee OR "
    "entry-level OR ekonom OR ingenjör OR utvecklare OR HR"
)


class IndeedAdapter(ApifyActorAdapter):
    """Single-query source: one actor run per fetch, newest postings first."""

    SOURCE = SourceType.INDEED
    ACTOR_ID = "hMvNSpz3JnHgl5jkh"

    def build_input(self, source_config: SourceConfig) -> dict:
        return {
            "country": source_config.country,
            "position": source_config.keywords or DEFAULT_KEYWORDS,
            "maxItems": source_config.max_items,
            "followApplyRedirects": False,
            "parseCompanyDetails": False,
            "saveOnlyUniqueItems": True,
            "proxy": {"useApifyProxy": True},
            "sort": "date",
        }

    def fetch(self, source_config: SourceConfig) -> List[RawIndeedJob]:
        actor_input = self.build_input(source_config)
        logger.info(
            "Fetching jobs from Indeed",
            extra={
                "event": "adapter.fetch.started",
                "source": self.SOURCE.value,
                "max_items": source_config.max_items,
            },
        )
        try:
            data = self._run_actor(self.ACTOR_ID, actor_input)
        except AdapterError as e:
            raise SourceFetchError(
                f"Indeed fetch failed: {e}", source=self.SOURCE.value
            ) from e

        return self._parse_records(data, RawIndeedJob)
