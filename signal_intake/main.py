"""Main entry point for the Signal Intake Pipeline."""

import argparse
import asyncio
import json
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from signal_intake.alerts import AlertEmitter
from signal_intake.config.environment import EnvironmentConfig
from signal_intake.config.exceptions import ConfigurationError
from signal_intake.config.loader import load_config
from signal_intake.config.models import AppConfig, SourceConfig
from signal_intake.domain.models import SourceType
from signal_intake.evaluation import Evaluator, OpenAIChatClient
from signal_intake.logging import get_logger
from signal_intake.logging.config import configure_logging
from signal_intake.persistence import SqlPersistenceGateway, close_database, init_database
from signal_intake.pipeline import SignalPipeline

logger = get_logger(__name__, component="cli")

SOURCE_CHOICES = [source.value for source in SourceType]


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > environment > config file > INFO.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Signal Intake Pipeline - fetch, evaluate and store recruitment signals"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Fetch one source and run the pipeline once")
    run_parser.add_argument("--source", required=True, choices=SOURCE_CHOICES)
    run_parser.add_argument(
        "--max-items",
        type=int,
        default=None,
        help="Override the configured max_items for this run",
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Delete stored records older than the retention window"
    )
    cleanup_parser.add_argument("--source", required=True, choices=SOURCE_CHOICES)
    cleanup_parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Retention window in days (default: pipeline.retention_days)",
    )

    return parser


def resolve_source(
    app_config: AppConfig, source: str, max_items: Optional[int] = None
) -> SourceConfig:
    """Find the configured source, applying a max_items override.

    Raises:
        ConfigurationError: If the source is missing, disabled, or the override is invalid
    """
    source_config = app_config.get_source(source)
    if source_config is None:
        raise ConfigurationError(
            f"Source '{source}' is not configured",
            suggestions=[f"Add a '{source}' entry under 'sources' in config.yaml"],
        )
    if not source_config.enabled:
        raise ConfigurationError(
            f"Source '{source}' is disabled",
            suggestions=[f"Set enabled: true for '{source}' in config.yaml"],
        )

    if max_items is not None:
        if not 1 <= max_items <= 1000:
            raise ConfigurationError(
                f"Invalid --max-items: {max_items}",
                suggestions=["Use a value between 1 and 1000"],
            )
        source_config = source_config.model_copy(update={"max_items": max_items})

    return source_config


def build_pipeline(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    gateway: SqlPersistenceGateway,
    alert_emitter: AlertEmitter,
    client: OpenAIChatClient,
) -> SignalPipeline:
    evaluator = Evaluator.from_config(app_config.evaluation, client, alert_emitter)
    return SignalPipeline(
        gateway=gateway,
        evaluator=evaluator,
        alert_emitter=alert_emitter,
        concurrency_limit=app_config.pipeline.concurrency_limit,
        item_timeout=app_config.pipeline.item_timeout_seconds,
        advanced_config=app_config.advanced,
        api_token=env_config.apify_api_key,
    )


async def run_command(
    app_config: AppConfig, env_config: EnvironmentConfig, source_config: SourceConfig
) -> int:
    """Run one source through the pipeline and print its JSON summary."""
    gateway = SqlPersistenceGateway()
    alert_emitter = AlertEmitter(gateway)
    client = OpenAIChatClient(
        api_key=env_config.ai_api_key,
        base_url=app_config.evaluation.base_url if env_config.uses_openrouter else None,
        timeout=app_config.evaluation.request_timeout_seconds,
    )
    pipeline = build_pipeline(app_config, env_config, gateway, alert_emitter, client)

    try:
        result = await pipeline.run_source(source_config)
    finally:
        await alert_emitter.drain()
        await client.close()

    print(json.dumps(result.to_summary(), indent=2, ensure_ascii=False))

    logger.info(
        f"Run completed: {result.stats.fetched} fetched, "
        f"{result.stats.after_dedup} new, "
        f"{result.stats.valid} valid, "
        f"{result.stats.discarded} discarded, "
        f"{result.stats.errors} errors",
        extra={
            "event": "service.run.completed",
            "run_id": result.run_id,
            "duration_seconds": result.duration_seconds,
            "had_errors": result.had_errors,
        },
    )
    return 1 if result.error else 0


async def cleanup_command(source: str, days: int) -> int:
    """Delete records of ``source`` older than ``days`` and print the count."""
    gateway = SqlPersistenceGateway()
    deleted = await gateway.delete_records_older_than(source, days)
    print(json.dumps({"source": source, "days": days, "deleted": deleted}))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Signal Intake Pipeline.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        log_format = app_config.logging.format if app_config.logging else "key-value"
        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(level=env_config.log_level, format_type=log_format, environment=environment)

        logger.info(
            "Signal Intake Pipeline starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "source": args.source,
                "log_level": env_config.log_level,
            },
        )

        if args.command == "run":
            source_config = resolve_source(app_config, args.source, args.max_items)
        else:
            days = args.days if args.days is not None else app_config.pipeline.retention_days
            if days < 1:
                raise ConfigurationError(
                    f"Invalid --days: {days}", suggestions=["Use a positive number of days"]
                )

        init_database(env_config.database_url)

        try:
            if args.command == "run":
                exit_code = asyncio.run(run_command(app_config, env_config, source_config))
            else:
                exit_code = asyncio.run(cleanup_command(args.source, days))
        finally:
            close_database()

        logger.info(
            "Signal Intake Pipeline stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
                "exit_code": exit_code,
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
