"""Contact extraction from evaluated items."""

from .extractor import ContactExtractor, is_usable_email, split_email_name, split_full_name

__all__ = ["ContactExtractor", "is_usable_email", "split_email_name", "split_full_name"]
