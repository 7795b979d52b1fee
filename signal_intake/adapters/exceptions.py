"""Custom exceptions for source adapters."""

from typing import Optional


class AdapterError(Exception):
    """Base exception for all adapter errors.

    Catching this handles any failure while talking to a source origin.
    """

    pass


class AdapterHTTPError(AdapterError):
    """HTTP request failed with a 4xx/5xx status or at the transport level.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AdapterTimeoutError(AdapterError):
    """HTTP request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class AdapterResponseError(AdapterError):
    """The origin answered, but the body could not be parsed or had the wrong shape."""

    pass


class AdapterConfigurationError(AdapterError):
    """Invalid adapter configuration (unknown source, missing token, bad timeout)."""

    pass


class SourceFetchError(AdapterError):
    """A fetch against the origin failed.

    Raised for a single-query source when its query fails, and for a
    multi-query source only when every sub-query failed. ``query`` names the
    failing sub-query when there is one.
    """

    def __init__(self, message: str, source: str, query: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source
        self.query = query
