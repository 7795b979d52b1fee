"""Non-fatal configuration checks run before schema validation."""

import warnings
from typing import Any, Dict, List

LARGE_MAX_ITEMS = 500
HIGH_CONCURRENCY = 10


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Inspect a raw configuration mapping for settings that are valid but risky.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    messages = []

    for source in config_dict.get("sources") or []:
        if not isinstance(source, dict):
            continue
        name = source.get("type", "unknown")
        if not source.get("enabled", True):
            messages.append(f"Source '{name}' is disabled and will be skipped")

        max_items = source.get("max_items")
        if isinstance(max_items, int) and max_items > LARGE_MAX_ITEMS:
            messages.append(
                f"Large max_items ({max_items}) for '{name}' increases AI cost and run time"
            )

        if source.get("exclusion_keywords") == []:
            messages.append(f"Source '{name}' has an empty exclusion list; no items will be filtered")

    pipeline = config_dict.get("pipeline")
    if isinstance(pipeline, dict):
        limit = pipeline.get("concurrency_limit")
        if isinstance(limit, int) and limit > HIGH_CONCURRENCY:
            messages.append(
                f"concurrency_limit {limit} may exceed AI provider rate limits"
            )

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
