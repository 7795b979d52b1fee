"""Fire-and-forget operational alerts.

``AlertEmitter.emit`` never raises and never blocks the caller. Inside a
running event loop the write happens on a detached task; outside one it runs
inline. Either way a failing sink is logged and otherwise ignored.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol, Set

from signal_intake.domain.models import AlertSeverity, SystemAlert
from signal_intake.logging import get_logger
from signal_intake.utils.timestamps import utc_now

logger = get_logger(__name__, component="alerts")


class AlertSink(Protocol):
    """Destination for alerts. ``write_alert`` is synchronous and may raise."""

    def write_alert(self, alert: SystemAlert) -> None:
        ...


class AlertEmitter:
    """Schedules alert writes without waiting for them.

    Strong references to in-flight tasks are kept in ``_pending`` until each
    finishes, so tasks are not garbage collected mid-write.
    """

    def __init__(self, sink: AlertSink) -> None:
        self.sink = sink
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def emit(
        self,
        source: str,
        stage: str,
        severity: AlertSeverity,
        title: str,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record an alert. Returns immediately and never raises."""
        try:
            alert = SystemAlert(
                source=source,
                stage=stage,
                severity=severity,
                title=title,
                message=message,
                metadata=metadata or {},
                created_at=utc_now(),
            )
        except Exception as e:
            logger.error(
                f"Discarding malformed alert '{title}': {e}",
                extra={"event": "alerts.emit.failed", "stage": stage, "error_type": type(e).__name__},
            )
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write(alert)
            return

        task = loop.create_task(self._deliver(alert))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, alert: SystemAlert) -> None:
        try:
            await asyncio.to_thread(self.sink.write_alert, alert)
        except Exception as e:
            self._log_failure(alert, e)
        else:
            self._log_emitted(alert)

    def _write(self, alert: SystemAlert) -> None:
        try:
            self.sink.write_alert(alert)
        except Exception as e:
            self._log_failure(alert, e)
        else:
            self._log_emitted(alert)

    def _log_emitted(self, alert: SystemAlert) -> None:
        logger.info(
            f"Alert emitted: {alert.title}",
            extra={
                "event": "alerts.emit.succeeded",
                "alert_source": alert.source,
                "stage": alert.stage,
                "severity": alert.severity,
            },
        )

    def _log_failure(self, alert: SystemAlert, error: Exception) -> None:
        logger.error(
            f"Failed to emit system alert: {error}",
            extra={
                "event": "alerts.emit.failed",
                "alert_source": alert.source,
                "stage": alert.stage,
                "title": alert.title,
                "error_type": type(error).__name__,
            },
        )

    async def drain(self) -> None:
        """Wait for every alert scheduled so far to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
