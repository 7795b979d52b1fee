"""Base adapter class with shared functionality for all source adapters.

This module provides the abstract base class every source adapter implements,
along with the shared HTTP request handling, lenient raw-record validation,
and the fetch → normalize → filter sequence used by the pipeline.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from signal_intake.config.models import SourceConfig
from signal_intake.domain.models import NormalizedItem, SourceType
from signal_intake.logging import get_logger

from .exceptions import (
    AdapterConfigurationError,
    AdapterHTTPError,
    AdapterResponseError,
    AdapterTimeoutError,
)
from .filtering import filter_by_exclusions
from .normalizers import normalize_raw

logger = get_logger(__name__, component="adapter")

RawT = TypeVar("RawT", bound=BaseModel)


@dataclass
class FetchBatch:
    """Result of one adapter collection: filtered items plus size deltas for logging."""

    source: str
    items: List[NormalizedItem] = field(default_factory=list)
    raw_count: int = 0
    normalized_count: int = 0


class BaseAdapter(ABC):
    """Base class for all source adapters.

    Subclasses declare ``SOURCE`` and implement ``fetch``. Normalization is
    dispatched on ``SOURCE`` to the pure per-source normalizers, and keyword
    filtering is shared.

    Attributes:
        timeout: HTTP request timeout in seconds
        user_agent: User-Agent header for HTTP requests
    """

    SOURCE: SourceType
    REQUIRES_TOKEN = False

    def __init__(
        self,
        timeout: int = 300,
        user_agent: str = "SignalIntakePipeline/0.1",
        api_token: Optional[str] = None,
    ) -> None:
        """Initialize adapter with configuration.

        Args:
            timeout: HTTP request timeout in seconds (range 5-300)
            user_agent: User-Agent header for requests
            api_token: Token for origins that require one

        Raises:
            AdapterConfigurationError: If timeout is outside valid range or user_agent is empty
        """
        if not 5 <= timeout <= 300:
            raise AdapterConfigurationError(
                f"Timeout must be between 5 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise AdapterConfigurationError("user_agent cannot be empty")

        self.timeout = timeout
        self.user_agent = user_agent.strip()
        self.api_token = api_token

        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent, "Accept": "application/json"})

    @abstractmethod
    def fetch(self, source_config: SourceConfig) -> List[BaseModel]:
        """Fetch raw records from the origin.

        Implementations validate every record against the source's lenient
        schema and drop the ones that fail. Multi-query sources isolate each
        sub-query's failure.

        Raises:
            SourceFetchError: When nothing could be fetched at all
        """

    def normalize(self, raw: BaseModel) -> NormalizedItem:
        """Map one raw record to the canonical item. Pure, no I/O."""
        return normalize_raw(self.SOURCE, raw)

    def filter(
        self, items: List[NormalizedItem], exclusion_keywords: Iterable[str]
    ) -> List[NormalizedItem]:
        """Drop items whose title, company or description contain an exclusion keyword."""
        return filter_by_exclusions(items, exclusion_keywords)

    def select_raw(
        self, records: List[BaseModel], source_config: SourceConfig
    ) -> List[BaseModel]:
        """Hook for source-specific filtering on raw records before normalization."""
        return records

    def collect(self, source_config: SourceConfig) -> FetchBatch:
        """Run fetch → normalize → filter for one source.

        Raises:
            SourceFetchError: Propagated from ``fetch``
        """
        raw_records = self.fetch(source_config)
        batch = FetchBatch(source=self.SOURCE.value, raw_count=len(raw_records))

        normalized: List[NormalizedItem] = []
        for raw in self.select_raw(raw_records, source_config):
            try:
                normalized.append(self.normalize(raw))
            except (ValidationError, ValueError) as e:
                logger.debug(
                    "Dropping record that failed normalization",
                    extra={"event": "adapter.normalize.dropped", "source": self.SOURCE.value, "error": str(e)},
                )
        batch.normalized_count = len(normalized)
        batch.items = self.filter(normalized, source_config.exclusion_keywords)

        logger.info(
            f"Collected {len(batch.items)} items from {self.SOURCE.value}",
            extra={
                "event": "adapter.collect.completed",
                "source": self.SOURCE.value,
                "raw_count": batch.raw_count,
                "normalized_count": batch.normalized_count,
                "filtered_count": len(batch.items),
            },
        )
        return batch

    def _parse_records(self, records: Any, schema: Type[RawT]) -> List[RawT]:
        """Validate each record leniently, silently dropping invalid ones."""
        if not isinstance(records, list):
            raise AdapterResponseError(
                f"Expected JSON array of records, got {type(records).__name__}"
            )

        parsed: List[RawT] = []
        for record in records:
            try:
                parsed.append(schema.model_validate(record))
            except ValidationError:
                continue

        logger.debug(
            f"Parsed raw {self.SOURCE.value} records",
            extra={
                "event": "adapter.records.parsed",
                "source": self.SOURCE.value,
                "parsed": len(parsed),
                "total": len(records),
            },
        )
        return parsed

    def _make_request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
    ) -> Any:
        """Make HTTP request with error handling.

        Returns:
            Parsed JSON response (object or array)

        Raises:
            AdapterHTTPError: On 4xx/5xx status or transport failure
            AdapterTimeoutError: On request timeout
            AdapterResponseError: On invalid JSON
        """
        request_headers = dict(self._session.headers)
        if headers:
            request_headers.update(headers)

        logger.debug(
            f"HTTP {method} request to {url}",
            extra={
                "event": "adapter.fetch.request",
                "method": method,
                "url": url,
                "timeout": self.timeout,
            },
        )

        try:
            response = self._session.request(
                method=method,
                url=url,
                headers=request_headers,
                params=params,
                json=json_data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={
                    "event": "adapter.fetch.retryable_error",
                    "error_type": "Timeout",
                    "url": url,
                    "timeout": self.timeout,
                },
            )
            raise AdapterTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds",
                url=url,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {e}",
                extra={
                    "event": "adapter.fetch.error",
                    "error_type": type(e).__name__,
                    "url": url,
                },
            )
            raise AdapterHTTPError(f"Request to {url} failed: {e}", status_code=0, url=url) from e

        if response.status_code >= 400:
            is_retryable = response.status_code >= 500 or response.status_code == 429
            logger.log(
                logging.WARNING if is_retryable else logging.ERROR,
                f"HTTP {response.status_code} error from {url}",
                extra={
                    "event": "adapter.fetch.retryable_error" if is_retryable else "adapter.fetch.error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise AdapterHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except (ValueError, requests.exceptions.JSONDecodeError) as e:
            logger.error(
                f"Failed to parse JSON response from {url}",
                extra={"event": "adapter.fetch.error", "error_type": "JSONDecodeError", "url": url},
            )
            raise AdapterResponseError(f"Failed to parse JSON response from {url}: {e}") from e

        logger.debug(
            "HTTP request succeeded",
            extra={"event": "adapter.fetch.succeeded", "status_code": response.status_code, "url": url},
        )
        return data

