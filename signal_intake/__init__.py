"""Signal intake pipeline for recruitment job postings and business leads."""

__version__ = "0.1.0"
