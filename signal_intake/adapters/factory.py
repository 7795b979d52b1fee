"""Factory function for instantiating source adapters."""

from typing import Dict, Optional, Type

from signal_intake.config.models import AdvancedConfig
from signal_intake.domain.models import SourceType
from signal_intake.logging import get_logger

from .arbetsformedlingen import ArbetsformedlingenAdapter
from .base import BaseAdapter
from .exceptions import AdapterConfigurationError
from .google_maps import GoogleMapsAdapter
from .indeed import IndeedAdapter
from .linkedin import LinkedInAdapter

logger = get_logger(__name__, component="adapter")

ADAPTERS: Dict[SourceType, Type[BaseAdapter]] = {
    SourceType.INDEED: IndeedAdapter,
    SourceType.LINKEDIN: LinkedInAdapter,
    SourceType.ARBETSFORMEDLINGEN: ArbetsformedlingenAdapter,
    SourceType.GOOGLE_MAPS: GoogleMapsAdapter,
}


def get_adapter(
    source_type: str,
    advanced_config: AdvancedConfig,
    api_token: Optional[str] = None,
) -> BaseAdapter:
    """Instantiate the adapter for ``source_type``.

    Args:
        source_type: Source identifier (indeed, linkedin, arbetsformedlingen, google_maps)
        advanced_config: HTTP timeout and user-agent settings
        api_token: Scraper API token, required by actor-backed sources at fetch time

    Raises:
        AdapterConfigurationError: If the source type is unknown, a required token
            is missing, or config is invalid

    Example:
        >>> adapter = get_adapter("indeed", AdvancedConfig(), api_token="apify_xxx")
        >>> batch = adapter.collect(source_config)
    """
    try:
        source = SourceType(str(source_type).lower())
    except ValueError:
        supported = ", ".join(sorted(s.value for s in SourceType))
        raise AdapterConfigurationError(
            f"Unknown source type: {source_type}. Supported types: {supported}"
        ) from None

    adapter_class = ADAPTERS[source]
    if adapter_class.REQUIRES_TOKEN and not api_token:
        raise AdapterConfigurationError(
            f"{source.value} requires an API token. Set APIFY_API_KEY"
        )

    logger.debug(
        "Creating adapter instance",
        extra={"event": "adapter.created", "source": source.value, "adapter_class": adapter_class.__name__},
    )

    try:
        return adapter_class(
            timeout=advanced_config.http_request_timeout,
            user_agent=advanced_config.user_agent,
            api_token=api_token,
        )
    except AdapterConfigurationError:
        raise
    except Exception as e:
        raise AdapterConfigurationError(f"Failed to create {source.value} adapter: {e}") from e
