"""Unit tests for the main entry point.

Tests the CLI including:
- Argument parsing for the run and cleanup commands
- Configuration loading with log level priority (CLI > env > config)
- Source resolution and overrides
- Database lifecycle and exit code handling
"""

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from signal_intake.config.environment import EnvironmentConfig
from signal_intake.config.exceptions import ConfigurationError
from signal_intake.config.models import AppConfig, OPENROUTER_BASE_URL
from signal_intake.main import (
    build_parser,
    load_runtime_config,
    main,
    resolve_source,
    run_command,
)
from signal_intake.pipeline import RunResult, RunStats
from signal_intake.utils.timestamps import utc_now


@pytest.fixture
def app_config():
    return AppConfig(
        sources=[
            {"type": "indeed", "max_items": 25},
            {"type": "linkedin", "enabled": False},
        ],
        logging={"level": "WARNING", "format": "json"},
    )


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        openrouter_api_key="sk-or-test",
        apify_api_key="apify-test",
        database_url="sqlite:///:memory:",
        log_level="INFO",
    )


def make_result(error=None):
    now = utc_now()
    return RunResult(
        run_id="run-1",
        source="indeed",
        start_time=now - timedelta(seconds=2),
        end_time=now,
        stats=RunStats(fetched=3, after_dedup=2, after_filter=2, processed=2, valid=1, discarded=1),
        error=error,
    )


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    @pytest.mark.parametrize(
        "cli_level,env_level,expected",
        [
            ("DEBUG", "ERROR", "DEBUG"),
            (None, "ERROR", "ERROR"),
            (None, None, "WARNING"),
        ],
    )
    def test_log_level_priority(self, app_config, cli_level, env_level, expected):
        env = EnvironmentConfig(openai_api_key="sk-test", log_level=env_level)

        with patch("signal_intake.main.load_config", return_value=(app_config, env)) as mock_load:
            _, env_config = load_runtime_config(Path("config.yaml"), cli_level)

        mock_load.assert_called_once_with(Path("config.yaml"))
        assert env_config.log_level == expected

    def test_defaults_to_info(self):
        config = AppConfig(sources=[{"type": "indeed"}])
        env = EnvironmentConfig(openai_api_key="sk-test")

        with patch("signal_intake.main.load_config", return_value=(config, env)):
            _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "INFO"


class TestBuildParser:
    def test_run_command(self):
        args = build_parser().parse_args(["--log-level", "DEBUG", "run", "--source", "linkedin", "--max-items", "5"])

        assert args.command == "run"
        assert args.source == "linkedin"
        assert args.max_items == 5
        assert args.log_level == "DEBUG"

    def test_cleanup_command(self):
        args = build_parser().parse_args(["cleanup", "--source", "indeed", "--days", "30"])

        assert args.command == "cleanup"
        assert args.days == 30

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_unknown_source_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["run", "--source", "monster"])


class TestResolveSource:
    def test_applies_max_items_override(self, app_config):
        source = resolve_source(app_config, "indeed", 7)

        assert source.max_items == 7
        assert app_config.get_source("indeed").max_items == 25

    def test_without_override(self, app_config):
        assert resolve_source(app_config, "indeed").max_items == 25

    def test_unconfigured_source(self, app_config):
        with pytest.raises(ConfigurationError, match="not configured"):
            resolve_source(app_config, "google_maps")

    def test_disabled_source(self, app_config):
        with pytest.raises(ConfigurationError, match="disabled"):
            resolve_source(app_config, "linkedin")

    @pytest.mark.parametrize("max_items", [0, 1001])
    def test_invalid_max_items(self, app_config, max_items):
        with pytest.raises(ConfigurationError, match="max-items"):
            resolve_source(app_config, "indeed", max_items)


class TestRunCommand:
    def test_prints_summary_and_closes_client(self, app_config, env_config, capsys):
        client = Mock()
        client.close = AsyncMock()
        pipeline = Mock()
        pipeline.run_source = AsyncMock(return_value=make_result())

        with patch("signal_intake.main.OpenAIChatClient", return_value=client) as client_class, patch(
            "signal_intake.main.build_pipeline", return_value=pipeline
        ):
            exit_code = asyncio.run(
                run_command(app_config, env_config, app_config.get_source("indeed"))
            )

        assert exit_code == 0
        client.close.assert_awaited_once()
        assert client_class.call_args.kwargs["base_url"] == OPENROUTER_BASE_URL
        assert client_class.call_args.kwargs["api_key"] == "sk-or-test"

        summary = json.loads(capsys.readouterr().out)
        assert summary["run_id"] == "run-1"
        assert summary["stats"]["valid"] == 1

    def test_run_level_error_exits_non_zero(self, app_config, env_config, capsys):
        client = Mock()
        client.close = AsyncMock()
        pipeline = Mock()
        pipeline.run_source = AsyncMock(return_value=make_result(error="fetch failed"))

        with patch("signal_intake.main.OpenAIChatClient", return_value=client), patch(
            "signal_intake.main.build_pipeline", return_value=pipeline
        ):
            exit_code = asyncio.run(
                run_command(app_config, env_config, app_config.get_source("indeed"))
            )

        assert exit_code == 1

    def test_openai_key_uses_default_base_url(self, app_config):
        env = EnvironmentConfig(openai_api_key="sk-test")
        client = Mock()
        client.close = AsyncMock()
        pipeline = Mock()
        pipeline.run_source = AsyncMock(return_value=make_result())

        with patch("signal_intake.main.OpenAIChatClient", return_value=client) as client_class, patch(
            "signal_intake.main.build_pipeline", return_value=pipeline
        ):
            asyncio.run(run_command(app_config, env, app_config.get_source("indeed")))

        assert client_class.call_args.kwargs["base_url"] is None


@patch("signal_intake.main.close_database")
@patch("signal_intake.main.init_database")
@patch("signal_intake.main.configure_logging")
@patch("signal_intake.main.load_runtime_config")
class TestMain:
    """Test suite for main() function."""

    def test_run_success(self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config):
        mock_load.return_value = (app_config, env_config)

        with patch("signal_intake.main.run_command", new=AsyncMock(return_value=0)) as mock_run:
            exit_code = main(["run", "--source", "indeed", "--max-items", "10"])

        assert exit_code == 0
        assert mock_logging.call_args.kwargs["level"] == "INFO"
        assert mock_logging.call_args.kwargs["format_type"] == "json"
        mock_init_db.assert_called_once_with("sqlite:///:memory:")
        mock_close_db.assert_called_once()
        source_config = mock_run.call_args.args[2]
        assert source_config.max_items == 10

    def test_run_with_errors(self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config):
        mock_load.return_value = (app_config, env_config)

        with patch("signal_intake.main.run_command", new=AsyncMock(return_value=1)):
            assert main(["run", "--source", "indeed"]) == 1

        mock_close_db.assert_called_once()

    def test_cleanup_uses_retention_days(
        self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config
    ):
        mock_load.return_value = (app_config, env_config)

        with patch("signal_intake.main.cleanup_command", new=AsyncMock(return_value=0)) as mock_cleanup:
            exit_code = main(["cleanup", "--source", "indeed"])

        assert exit_code == 0
        mock_cleanup.assert_awaited_once_with("indeed", 20)

    def test_cleanup_rejects_non_positive_days(
        self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config, capsys
    ):
        mock_load.return_value = (app_config, env_config)

        assert main(["cleanup", "--source", "indeed", "--days", "0"]) == 1
        mock_init_db.assert_not_called()
        assert "Configuration Error" in capsys.readouterr().err

    def test_configuration_error(self, mock_load, mock_logging, mock_init_db, mock_close_db, capsys):
        mock_load.side_effect = ConfigurationError(
            "Config file not found", suggestions=["Create config.yaml"]
        )

        exit_code = main(["run", "--source", "indeed"])

        assert exit_code == 1
        assert "Configuration Error: Config file not found" in capsys.readouterr().err
        mock_init_db.assert_not_called()

    def test_disabled_source_is_configuration_error(
        self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config
    ):
        mock_load.return_value = (app_config, env_config)

        assert main(["run", "--source", "linkedin"]) == 1
        mock_init_db.assert_not_called()

    def test_keyboard_interrupt(self, mock_load, mock_logging, mock_init_db, mock_close_db):
        mock_load.side_effect = KeyboardInterrupt()

        assert main(["run", "--source", "indeed"]) == 0

    def test_fatal_error(self, mock_load, mock_logging, mock_init_db, mock_close_db, app_config, env_config, capsys):
        mock_load.return_value = (app_config, env_config)
        mock_init_db.side_effect = RuntimeError("disk full")

        assert main(["run", "--source", "indeed"]) == 1
        assert "Fatal error: disk full" in capsys.readouterr().err
