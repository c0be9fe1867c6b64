"""
Tests for the command line interface.
"""

import logging
from unittest.mock import patch

from typer.testing import CliRunner

from chat_relay.uvicorn_filters import ExcludeMetricsFilter
from cli import build_log_config, typer_app

runner = CliRunner()


def make_access_record(message: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestServe:
    def test_serve_runs_application_factory(self):
        with patch("cli.uvicorn.run") as mock_run:
            result = runner.invoke(typer_app, ["serve", "--port", "5050"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()
        args, kwargs = mock_run.call_args
        assert args == ("chat_relay:application",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 5050
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["reload"] is False

    def test_log_config_filters_access_log(self):
        log_config = build_log_config()

        assert log_config["handlers"]["access"]["filters"] == [
            "exclude_metrics"
        ]
        assert (
            log_config["filters"]["exclude_metrics"]["()"]
            == "chat_relay.uvicorn_filters.ExcludeMetricsFilter"
        )


class TestSettingsCommand:
    def test_settings_table(self):
        result = runner.invoke(typer_app, ["settings"])

        assert result.exit_code == 0, result.output
        assert "WS_PATH" in result.output
        assert "PORT" in result.output


class TestExcludeMetricsFilter:
    def test_monitoring_paths_are_dropped(self):
        access_filter = ExcludeMetricsFilter()

        assert not access_filter.filter(
            make_access_record('127.0.0.1:4000 - "GET /metrics HTTP/1.1" 200')
        )
        assert not access_filter.filter(
            make_access_record('127.0.0.1:4000 - "GET /health HTTP/1.1" 200')
        )

    def test_other_paths_are_kept(self):
        access_filter = ExcludeMetricsFilter()

        assert access_filter.filter(
            make_access_record('127.0.0.1:4000 - "GET /send HTTP/1.1" 400')
        )
