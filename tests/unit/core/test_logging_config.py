"""Tests for structured logging setup."""

import json
import logging

import structlog

from gcal_tools.logging_config import configure_once, get_logger, scan_context, setup_logging


class TestSetupLogging:
    """Tests for structlog/stdlib configuration."""

    def test_json_output_with_scan_context(self, capsys):
        """Should render JSON lines carrying bound scan fields."""
        setup_logging(level="DEBUG", json_output=True)
        logger = get_logger("gcal_tools.tests")

        with scan_context(target_calendar="primary", calendars=2):
            logger.info("Scan started")
        logger.info("Scan finished")

        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        started, finished = lines[-2], lines[-1]
        assert started["event"] == "Scan started"
        assert started["level"] == "info"
        assert started["logger"] == "gcal_tools.tests"
        assert started["target_calendar"] == "primary"
        assert started["calendars"] == 2
        assert "target_calendar" not in finished

    def test_stdlib_records_formatted(self, capsys):
        """Should pass stdlib log records through the same renderer."""
        setup_logging(level="INFO", json_output=True)

        logging.getLogger("gcal_tools.config").warning("Invalid conflict config")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "Invalid conflict config"
        assert record["level"] == "warning"

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("GCAL_TOOLS_LOG_LEVEL", "ERROR")

        setup_logging()

        assert logging.getLogger().level == logging.ERROR

    def test_quiet_loggers(self):
        """Should keep library loggers at WARNING or above."""
        setup_logging(level="DEBUG")

        assert logging.getLogger("aiohttp").level == logging.WARNING
        assert logging.getLogger("asyncio").level == logging.WARNING


class TestConfigureOnce:
    def test_configures_when_unconfigured(self):
        structlog.reset_defaults()

        configure_once()

        assert structlog.is_configured()
        assert len(logging.getLogger().handlers) == 1

    def test_leaves_existing_configuration(self):
        """Should not replace handlers a host application installed."""
        setup_logging(level="INFO")
        handler = logging.getLogger().handlers[0]

        configure_once()

        assert logging.getLogger().handlers == [handler]
