"""Test helper utilities for signal intake tests."""

from .fakes import (
    InMemoryGateway,
    RecordingAlertSink,
    ScriptedChatClient,
    company_response,
    job_response,
)

__all__ = [
    "InMemoryGateway",
    "RecordingAlertSink",
    "ScriptedChatClient",
    "company_response",
    "job_response",
]
