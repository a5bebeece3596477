# ABOUTME: Tests for logging mode detection and loguru sink configuration
# ABOUTME: Runs inside a temporary working directory so log files never land in the repo

import logging

import pytest

from lomba_relay.utils.logging import LoggingMode, configure_logging, get_logging_status
from lomba_relay.utils.logging.config import detect_logging_mode


@pytest.fixture
def in_tmp_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDetectLoggingMode:
    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LOMBA_RELAY_LOG_MODE", "production")
        assert detect_logging_mode() == LoggingMode.PRODUCTION

        monkeypatch.setenv("LOMBA_RELAY_LOG_MODE", "INTERACTIVE")
        assert detect_logging_mode() == LoggingMode.INTERACTIVE

    def test_unknown_value_falls_back_to_tty_detection(self, monkeypatch):
        monkeypatch.setenv("LOMBA_RELAY_LOG_MODE", "verbose")
        assert detect_logging_mode() in (LoggingMode.INTERACTIVE, LoggingMode.PRODUCTION)


class TestConfigureLogging:
    """Test sink setup for both modes."""

    def test_interactive_mode_creates_log_directory(self, in_tmp_dir):
        configure_logging(mode=LoggingMode.INTERACTIVE, log_level="DEBUG")

        assert (in_tmp_dir / "logs").is_dir()
        assert logging.getLogger().level == logging.DEBUG

    def test_production_mode_writes_no_files(self, in_tmp_dir):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level="WARNING")

        assert not (in_tmp_dir / "logs").exists()

    def test_third_party_loggers_are_quieted(self, in_tmp_dir):
        configure_logging(mode=LoggingMode.PRODUCTION)

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("botocore").level == logging.CRITICAL


class TestLoggingStatus:
    def test_production_status_has_no_files(self, in_tmp_dir, monkeypatch):
        monkeypatch.setenv("LOMBA_RELAY_LOG_MODE", "production")

        status = get_logging_status()

        assert status["mode"] == LoggingMode.PRODUCTION
        assert status["log_files"] == {"main": None, "json": None, "errors": None}
        assert "httpx" in status["third_party_suppressed"]
