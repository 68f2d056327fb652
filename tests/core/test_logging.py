"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from phpthrows.config.models import LoggingConfig, LogOutputConfig
from phpthrows.core.logging import _run_id, configure_logging, get_run_id, set_run_id


class TestRunIdCorrelation:
    """Run ID context variable tests."""

    def setup_method(self) -> None:
        """Clear run ID before each test."""
        _run_id.set(None)

    def test_given_run_id_when_set_then_can_retrieve(self) -> None:
        """Run ID can be set and retrieved."""
        # When
        result = set_run_id("run-123")

        # Then
        assert result == "run-123"
        assert get_run_id() == "run-123"

    def test_given_no_id_when_set_then_generates_uuid(self) -> None:
        """Set generates UUID-based ID when none provided."""
        rid = set_run_id()

        assert rid is not None
        assert len(rid) == 12  # uuid4().hex[:12]

    def test_given_new_run_when_set_then_id_changes(self) -> None:
        """Each run gets its own generated ID."""
        first = set_run_id()
        second = set_run_id()

        assert first != second
        assert get_run_id() == second


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        _run_id.set(None)

    def teardown_method(self) -> None:
        logging.getLogger().handlers.clear()
        _run_id.set(None)

    def test_given_file_output_when_log_then_json_has_required_fields(self, tmp_path: Path) -> None:
        """JSON output carries event, level, timestamp and bound values."""
        # Given
        log_file = tmp_path / "phpthrows.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        logger = structlog.get_logger("test")

        # When
        logger.info("cache_saved", entries=3)

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "cache_saved"
        assert data["entries"] == 3
        assert data["level"] == "info"
        assert data["logger"] == "test"
        assert "timestamp" in data

    def test_given_run_id_when_log_then_run_id_attached(self, tmp_path: Path) -> None:
        """Every event logged during a run carries its correlation ID."""
        # Given
        log_file = tmp_path / "phpthrows.log"
        configure_logging(
            config=LoggingConfig(
                level="DEBUG",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        set_run_id("abc123")

        # When
        structlog.get_logger().debug("pass1_complete")

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["run_id"] == "abc123"

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG should override the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        structlog.get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_logs_to_all(
        self, tmp_path: Path
    ) -> None:
        """Multiple outputs receive logs according to their levels."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = structlog.get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content

        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_default_level_when_info_logged_then_stdout_stays_clean(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Console logging never writes to stdout."""
        # Given
        configure_logging(level="INFO")

        # When
        structlog.get_logger().info("analysis_started")

        # Then
        captured = capsys.readouterr()
        assert captured.out == ""
