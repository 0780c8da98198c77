"""
Tests for logging infrastructure.

Verifies logger configuration, file creation, and handler shutdown.
"""

import logging
from unittest.mock import patch

import pytest

import voxrelay.utils.logger as logger_module
from voxrelay.utils.logger import get_log_dir, get_logger, shutdown_logging


@pytest.fixture
def fresh_logging(tmp_path, monkeypatch):
    """Point logging at tmp_path and force re-initialization."""
    monkeypatch.setenv("VOXRELAY_LOG_DIR", str(tmp_path / "logs"))
    shutdown_logging()
    yield tmp_path / "logs"
    shutdown_logging()


class TestLoggerConfiguration:
    """Tests for logger setup and configuration."""

    def test_get_logger_returns_logger(self):
        """Test get_logger returns a Logger instance."""
        logger = get_logger("voxrelay.test")
        assert isinstance(logger, logging.Logger)

    def test_get_logger_singleton(self):
        """Test get_logger returns same instance for root logger."""
        logger1 = get_logger("voxrelay")
        logger2 = get_logger("voxrelay")
        assert logger1 is logger2

    def test_log_directory_override(self, fresh_logging):
        """Test log directory is created from the environment override."""
        log_dir = get_log_dir()

        assert log_dir == fresh_logging
        assert log_dir.is_dir()

    def test_platform_log_directory(self, tmp_path, monkeypatch):
        monkeypatch.delenv("VOXRELAY_LOG_DIR", raising=False)

        with patch.object(logger_module, "user_log_path", return_value=tmp_path) as mock_path:
            assert get_log_dir() == tmp_path

        mock_path.assert_called_once()

    def test_logger_writes_to_file(self, fresh_logging):
        """Test logger writes messages to file."""
        logger = get_logger("voxrelay.core.session")
        logger.info("Test message")

        log_file = fresh_logging / "app.log"
        assert log_file.exists()

        content = log_file.read_text()
        assert "Test message" in content
        assert "voxrelay.core.session" in content

    def test_configures_despite_foreign_handler(self, fresh_logging):
        foreign = logging.NullHandler()
        logging.getLogger("voxrelay").addHandler(foreign)

        get_logger("voxrelay.core.session").warning("Captured elsewhere too")

        assert "Captured elsewhere too" in (fresh_logging / "app.log").read_text()
        assert foreign in logging.getLogger("voxrelay").handlers

    def test_level_from_environment(self, fresh_logging, monkeypatch):
        monkeypatch.setenv("VOXRELAY_LOG_LEVEL", "WARNING")

        root = get_logger()

        assert root.level == logging.WARNING


class TestShutdown:
    def test_shutdown_removes_handlers(self, fresh_logging):
        root = get_logger()
        assert root.handlers

        shutdown_logging()

        assert logging.getLogger("voxrelay").handlers == []
        assert logger_module._logger_instance is None
