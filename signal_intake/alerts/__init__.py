"""Operational alerting side channel."""

from .emitter import AlertEmitter, AlertSink

__all__ = ["AlertEmitter", "AlertSink"]
