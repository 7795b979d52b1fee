"""Source adapters for job boards and place listings.

This module provides adapters for every signal source:
- Indeed: indeed.IndeedAdapter
- LinkedIn: linkedin.LinkedInAdapter
- Arbetsförmedlingen: arbetsformedlingen.ArbetsformedlingenAdapter
- Google Maps: google_maps.GoogleMapsAdapter

Use the factory function to instantiate adapters:
    from signal_intake.adapters import get_adapter
    adapter = get_adapter("indeed", advanced_config, api_token=env.apify_api_key)
    batch = adapter.collect(source_config)
"""

from .arbetsformedlingen import ArbetsformedlingenAdapter
from .base import BaseAdapter, FetchBatch
from .exceptions import (
    AdapterConfigurationError,
    AdapterError,
    AdapterHTTPError,
    AdapterResponseError,
    AdapterTimeoutError,
    SourceFetchError,
)
from .factory import get_adapter
from .filtering import filter_by_exclusions, filter_places
from .google_maps import GoogleMapsAdapter
from .indeed import IndeedAdapter
from .linkedin import LinkedInAdapter
from .normalizers import NORMALIZERS, normalize_raw

__all__ = [
    # Base and factory
    "BaseAdapter",
    "FetchBatch",
    "get_adapter",
    # Adapters
    "IndeedAdapter",
    "LinkedInAdapter",
    "ArbetsformedlingenAdapter",
    "GoogleMapsAdapter",
    # Pure helpers
    "NORMALIZERS",
    "normalize_raw",
    "filter_by_exclusions",
    "filter_places",
    # Exceptions
    "AdapterError",
    "AdapterHTTPError",
    "AdapterTimeoutError",
    "AdapterResponseError",
    "AdapterConfigurationError",
    "SourceFetchError",
]
