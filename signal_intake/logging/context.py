"""Context propagation for structured logging.

Fields pushed here (run_id, source, external_id, ...) are merged into every
log record emitted inside the scope. The store is a ContextVar, so each
asyncio task started inside a scope sees a copy of the fields that were active
when it was created, and concurrent items in a batch do not leak their item
fields into each other.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_log_fields: ContextVar[Dict[str, Any]] = ContextVar("signal_intake_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields active in the current context."""
    return dict(_log_fields.get())


def push_log_context(**fields: Any) -> Token:
    """Merge ``fields`` into the active context and return a reset token."""
    return _log_fields.set({**_log_fields.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by ``push_log_context``."""
    _log_fields.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Used by tests."""
    _log_fields.set({})


class log_context:
    """Scope logging fields to a ``with`` block.

    Example:
        >>> with log_context(run_id="3f2a", source="indeed"):
        ...     logger.info("Batch started")  # carries run_id and source
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token: Optional[Token] = None

    def __enter__(self) -> "log_context":
        self._token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self._token is not None:
            pop_log_context(self._token)
            self._token = None
        return False
