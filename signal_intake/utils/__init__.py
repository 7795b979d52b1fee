"""Utility functions for time handling and company domains."""

from .domains import extract_domain, guess_company_domain, mask_email, normalize_company_name
from .timestamps import days_ago, ensure_utc, format_timestamp, parse_iso_datetime, utc_now

__all__ = [
    # Domains
    "guess_company_domain",
    "normalize_company_name",
    "extract_domain",
    "mask_email",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "days_ago",
]
