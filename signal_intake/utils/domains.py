"""Helpers for company domains and email addresses."""

import re
from typing import Optional
from urllib.parse import urlparse

_COMPANY_SUFFIX = re.compile(r"\s+(ab|aktiebolag|sweden|sverige|stockholm|göteborg|malmö)$")


def normalize_company_name(company: str) -> str:
    """Lowercase a company name and drop one trailing legal/location suffix."""
    return _COMPANY_SUFFIX.sub("", company.lower().strip()).strip()


def guess_company_domain(company: str) -> Optional[str]:
    """Guess a Swedish domain for a company name.

    Example:
        >>> guess_company_domain("Volvo Cars AB")
        'volvo-cars.se'
    """
    normalized = normalize_company_name(company or "")
    if len(normalized) < 3:
        return None

    slug = re.sub(r"[^a-z0-9\s-]", "", normalized)
    slug = re.sub(r"\s+", "-", slug)
    return slug[:63] + ".se"


def extract_domain(website: str) -> str:
    """Extract the bare hostname from a website URL, without ``www.``."""
    candidate = (website or "").strip()
    if not candidate:
        return ""
    if not candidate.startswith(("http://", "https://")):
        candidate = f"https://{candidate}"

    host = urlparse(candidate).hostname or ""
    if not host:
        host = re.sub(r"^https?://", "", candidate).split("/")[0]

    host = host.lower().strip()
    if host.startswith("www."):
        host = host[4:]
    return host


def mask_email(email: Optional[str]) -> str:
    """Mask the local part of an email for logging (``e***@example.se``)."""
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"
