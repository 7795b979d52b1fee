"""Pipeline orchestration: dedupe, batch-process, and aggregate one run."""

import asyncio
from datetime import datetime
from typing import List, Optional, Union
from uuid import uuid4

from signal_intake.adapters.factory import get_adapter
from signal_intake.alerts import AlertEmitter
from signal_intake.config.models import AdvancedConfig, SourceConfig
from signal_intake.contacts import ContactExtractor
from signal_intake.domain.models import AlertSeverity, NormalizedItem, SourceType
from signal_intake.evaluation import Evaluator
from signal_intake.logging import get_logger
from signal_intake.logging.context import log_context
from signal_intake.persistence.gateway import PersistenceGateway
from signal_intake.utils.timestamps import utc_now

from .batch import DEFAULT_CONCURRENCY_LIMIT, BatchRunner
from .dedup import Deduplicator
from .models import ProcessedOutcome, RunResult, RunStats

logger = get_logger(__name__, component="pipeline")


class SignalPipeline:
    """
    Runs fetched items through deduplication, evaluation, and persistence.

    ``run_pipeline`` never raises: item-level failures become error outcomes
    and run-level failures become a RunResult carrying ``error`` plus a
    critical alert.

    Args:
        gateway: Persistence boundary shared by dedup and the batch runner
        evaluator: AI evaluator with model fallback
        alert_emitter: Receives run-level failure alerts (optional)
        extractor: Contact extractor (defaults to a new ContactExtractor)
        concurrency_limit: Items processed concurrently per chunk
        item_timeout: Upper bound in seconds for persisting one evaluated item, or None
        advanced_config: HTTP settings for adapters used by ``run_source``
        api_token: Scraper API token for actor-backed sources
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        evaluator: Evaluator,
        alert_emitter: Optional[AlertEmitter] = None,
        extractor: Optional[ContactExtractor] = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        item_timeout: Optional[float] = None,
        advanced_config: Optional[AdvancedConfig] = None,
        api_token: Optional[str] = None,
    ):
        self.gateway = gateway
        self.alert_emitter = alert_emitter
        self.deduplicator = Deduplicator(gateway)
        self.batch_runner = BatchRunner(
            evaluator=evaluator,
            gateway=gateway,
            extractor=extractor,
            concurrency_limit=concurrency_limit,
            item_timeout=item_timeout,
        )
        self.advanced_config = advanced_config or AdvancedConfig()
        self.api_token = api_token

    async def run_source(self, source_config: SourceConfig) -> RunResult:
        """Collect items from one configured source and run them through the pipeline."""
        run_id = str(uuid4())
        start_time = utc_now()
        source = SourceType(source_config.type).value

        with log_context(run_id=run_id, source=source):
            try:
                adapter = get_adapter(source, self.advanced_config, self.api_token)
                batch = await asyncio.to_thread(adapter.collect, source_config)
            except Exception as e:
                logger.error(
                    f"Fetch failed for {source}: {e}",
                    extra={
                        "event": "pipeline.fetch.failed",
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                self._alert(
                    source=source,
                    stage="fetch",
                    title=f"Fetch failed for {source}",
                    message=str(e),
                    metadata={"run_id": run_id, "error_type": type(e).__name__},
                )
                return self._failed_result(run_id, source, start_time, fetched=0, error=str(e))

        return await self.run_pipeline(batch.items, source, run_id=run_id)

    async def run_pipeline(
        self,
        items: List[NormalizedItem],
        source: Union[SourceType, str],
        run_id: Optional[str] = None,
    ) -> RunResult:
        """
        Dedupe ``items``, process the survivors, and aggregate the outcomes.

        Returns:
            RunResult with stats and outcomes partitioned into valid,
            discarded, and error lists. Never raises.
        """
        run_id = run_id or str(uuid4())
        start_time = utc_now()
        source_value = source.value if isinstance(source, SourceType) else str(source)
        fetched = len(items)

        with log_context(run_id=run_id, source=source_value):
            logger.info(
                f"Pipeline run started with {fetched} items",
                extra={"event": "pipeline.run.started", "fetched": fetched},
            )

            try:
                fresh = await self.deduplicator.dedupe(items, SourceType(source_value))

                if not fresh:
                    result = RunResult(
                        run_id=run_id,
                        source=source_value,
                        start_time=start_time,
                        end_time=utc_now(),
                        stats=RunStats(fetched=fetched),
                    )
                    logger.info(
                        "No new items after deduplication",
                        extra={"event": "pipeline.run.completed", **result.stats.to_dict()},
                    )
                    return result

                outcomes = await self.batch_runner.run(fresh)
                result = self._aggregate(run_id, source_value, start_time, fetched, len(fresh), outcomes)

            except Exception as e:
                logger.error(
                    f"Pipeline run failed: {e}",
                    extra={
                        "event": "pipeline.run.failed",
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                    exc_info=True,
                )
                self._alert(
                    source=source_value,
                    stage="pipeline_failure",
                    title="Pipeline run failed",
                    message=str(e),
                    metadata={"run_id": run_id, "fetched": fetched, "error_type": type(e).__name__},
                )
                return self._failed_result(run_id, source_value, start_time, fetched, str(e))

            logger.info(
                "Pipeline run completed",
                extra={
                    "event": "pipeline.run.completed",
                    "duration_ms": int(result.duration_seconds * 1000),
                    **result.stats.to_dict(),
                },
            )
            return result

    def _aggregate(
        self,
        run_id: str,
        source: str,
        start_time: datetime,
        fetched: int,
        after_dedup: int,
        outcomes: List[ProcessedOutcome],
    ) -> RunResult:
        valid = [o for o in outcomes if o.success and o.evaluation.is_valid]
        discarded = [o for o in outcomes if o.success and not o.evaluation.is_valid]
        errors = [o for o in outcomes if not o.success]

        stats = RunStats(
            fetched=fetched,
            after_dedup=after_dedup,
            after_filter=after_dedup,
            processed=len(outcomes),
            valid=len(valid),
            discarded=len(discarded),
            errors=len(errors),
        )
        return RunResult(
            run_id=run_id,
            source=source,
            start_time=start_time,
            end_time=utc_now(),
            stats=stats,
            valid_outcomes=valid,
            discarded_outcomes=discarded,
            error_outcomes=errors,
        )

    def _failed_result(
        self, run_id: str, source: str, start_time: datetime, fetched: int, error: str
    ) -> RunResult:
        return RunResult(
            run_id=run_id,
            source=source,
            start_time=start_time,
            end_time=utc_now(),
            stats=RunStats(fetched=fetched, errors=1),
            error=error,
        )

    def _alert(self, source: str, stage: str, title: str, message: str, metadata: dict) -> None:
        if self.alert_emitter is None:
            return
        self.alert_emitter.emit(
            source=source,
            stage=stage,
            severity=AlertSeverity.CRITICAL,
            title=title,
            message=message,
            metadata=metadata,
        )
