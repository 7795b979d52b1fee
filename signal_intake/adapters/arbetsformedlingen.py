"""Arbetsförmedlingen (JobTech) job search adapter with page continuation."""

from typing import List

from pydantic import ValidationError

from signal_intake.config.models import SourceConfig
from signal_intake.domain.models import SourceType
from signal_intake.logging import get_logger
from signal_intake.utils.timestamps import days_ago, format_timestamp

from .base import BaseAdapter
from .exceptions import AdapterError, AdapterResponseError, SourceFetchError
from .schemas import RawAFJob, RawAFSearchResponse

logger = get_logger(__name__, component="adapter")

DEFAULT_KEYWORDS = (
    "nyexaminerad OR nyexad OR junior OR trainee OR graduate OR ekonom OR "
    "civilekonom OR ingenjör OR civilingenjör OR utvecklare OR systemutvecklare OR "
    "analytiker OR controller OR jurist OR projektkoordinator OR HR"
)
MAX_PAGE_SIZE = 100
PUBLISHED_WITHIN_DAYS = 15


class ArbetsformedlingenAdapter(BaseAdapter):
    """Public job search API; no token required.

    API Details:
        Endpoint: https://jobsearch.api.jobtechdev.se/search
        Method: GET
        Authentication: None (public)
        Response: JSON object with 'hits' array and 'total'
    """

    SOURCE = SourceType.ARBETSFORMEDLINGEN
    API_URL = "https://jobsearch.api.jobtechdev.se/search"

    def build_params(
        self, keywords: str, limit: int, offset: int, published_after: str
    ) -> dict:
        return {
            "q": keywords,
            "limit": limit,
            "offset": offset,
            "published-after": published_after,
        }

    def fetch(self, source_config: SourceConfig) -> List[RawAFJob]:
        """Request pages until ``max_items`` hits are collected or the API runs dry.

        A failure on the first page fails the fetch. A failure on a later page
        ends pagination and keeps the hits collected so far.
        """
        keywords = source_config.keywords or DEFAULT_KEYWORDS
        total_wanted = source_config.max_items
        page_size = min(total_wanted, MAX_PAGE_SIZE)
        published_after = format_timestamp(days_ago(PUBLISHED_WITHIN_DAYS))

        records: List[RawAFJob] = []
        offset = 0

        while len(records) < total_wanted:
            limit = min(page_size, total_wanted - len(records))
            params = self.build_params(keywords, limit, offset, published_after)
            try:
                hits = self._fetch_page(params)
            except AdapterError as e:
                if offset == 0:
                    raise SourceFetchError(
                        f"Arbetsförmedlingen search failed: {e}", source=self.SOURCE.value
                    ) from e
                logger.warning(
                    f"Stopping pagination at offset {offset}: {e}",
                    extra={
                        "event": "adapter.fetch.page_failed",
                        "source": self.SOURCE.value,
                        "offset": offset,
                        "error_type": type(e).__name__,
                    },
                )
                break

            records.extend(job for job in self._parse_records(hits, RawAFJob) if not job.removed)

            if not hits or len(hits) < limit:
                break
            offset += len(hits)

        return records[:total_wanted]

    def _fetch_page(self, params: dict) -> list:
        data = self._make_request(self.API_URL, params=params)
        try:
            page = RawAFSearchResponse.model_validate(data)
        except ValidationError as e:
            raise AdapterResponseError(f"Unexpected search response shape: {e}") from e
        return page.hits
