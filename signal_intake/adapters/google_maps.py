"""Google Maps place adapter producing company leads."""

from typing import List

from signal_intake.config.models import SourceConfig
from signal_intake.domain.models import SourceType
from signal_intake.logging import get_logger

from .apify import ApifyActorAdapter
from .exceptions import AdapterError, SourceFetchError
from .filtering import filter_places
from .schemas import RawPlace

logger = get_logger(__name__, component="adapter")

LEAD_DEPARTMENTS = [
    "human_resources",
    "operations",
    "engineering_technical",
    "marketing",
    "consulting",
]
LEAD_SENIORITY = ["manager", "director", "vp", "c_suite"]
MAX_LEADS_PER_PLACE = 3


class GoogleMapsAdapter(ApifyActorAdapter):
    """Multi-query source: one actor run per configured search query.

    Places without a website, outside the configured country, or run by staffing
    agencies and known competitors are removed before normalization.
    """

    SOURCE = SourceType.GOOGLE_MAPS
    ACTOR_ID = "nwua9Gu5YrADL7ZDj"

    def build_input(self, query: str, source_config: SourceConfig) -> dict:
        return {
            "searchStringsArray": [query],
            "maxCrawledPlacesPerSearch": source_config.max_items,
            "language": "sv",
            "countryCode": source_config.country.lower(),
            "scrapeBusinessLeads": True,
            "maximumLeadsEnrichmentRecords": MAX_LEADS_PER_PLACE,
            "leadsEnrichmentDepartments": list(LEAD_DEPARTMENTS),
            "leadsSeniority": list(LEAD_SENIORITY),
            "onePerGoogleMapsUrl": True,
        }

    def fetch(self, source_config: SourceConfig) -> List[RawPlace]:
        queries = [q for q in source_config.search_queries if q and q.strip()]
        if not queries:
            raise SourceFetchError("No search queries configured", source=self.SOURCE.value)

        places: List[RawPlace] = []
        seen_ids = set()
        failures: List[str] = []

        for query in queries:
            logger.info(
                f"Searching places for '{query}'",
                extra={"event": "adapter.fetch.started", "source": self.SOURCE.value, "query": query},
            )
            try:
                data = self._run_actor(self.ACTOR_ID, self.build_input(query, source_config))
            except AdapterError as e:
                failures.append(query)
                logger.warning(
                    f"Place search '{query}' failed: {e}",
                    extra={
                        "event": "adapter.subquery.failed",
                        "source": self.SOURCE.value,
                        "query": query,
                        "error_type": type(e).__name__,
                    },
                )
                continue

            for place in self._parse_records(data, RawPlace):
                if place.placeId not in seen_ids:
                    seen_ids.add(place.placeId)
                    places.append(place)

        if len(failures) == len(queries):
            logger.error(
                f"All {len(queries)} place searches failed",
                extra={
                    "event": "adapter.fetch.failed",
                    "source": self.SOURCE.value,
                    "query": ", ".join(failures),
                },
            )

        return places

    def select_raw(self, records: List[RawPlace], source_config: SourceConfig) -> List[RawPlace]:
        kept = filter_places(records, source_config.country)
        if len(kept) != len(records):
            logger.info(
                f"Removed {len(records) - len(kept)} ineligible places",
                extra={
                    "event": "adapter.places.filtered",
                    "source": self.SOURCE.value,
                    "removed": len(records) - len(kept),
                },
            )
        return kept
