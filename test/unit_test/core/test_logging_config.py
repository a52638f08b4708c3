"""Unit tests for logging configuration module.

Tests verify that setup_logging installs the console handler, the optional file
handler, and the per-module levels used across the runtime.
"""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from cowork_ai.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


def _console_handler() -> logging.Handler:
    root_logger = logging.getLogger()
    return next(
        h
        for h in root_logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    )


def _file_handler():
    root_logger = logging.getLogger()
    return next((h for h in root_logger.handlers if isinstance(h, logging.FileHandler)), None)


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
            ("debug", logging.DEBUG),  # Test lowercase
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        assert _console_handler().level == expected_level

    def test_root_logger_captures_everything(self):
        """Filtering happens at handler level, so the root logger stays at DEBUG."""
        setup_logging(log_level="WARNING", enable_file=False)

        assert logging.getLogger().level == logging.DEBUG


class TestSetupLoggingFormats:
    @pytest.mark.parametrize(
        "log_format,expected_format",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", JSON_FORMAT),
            ("unknown", DETAILED_FORMAT),
        ],
    )
    def test_setup_logging_with_different_formats(self, log_format, expected_format):
        setup_logging(log_format=log_format, enable_file=False)

        handler = _console_handler()
        assert handler.formatter._fmt == expected_format
        assert handler.formatter.datefmt == "%Y-%m-%d %H:%M:%S"


class TestSetupLoggingFileHandling:
    """Test setup_logging file logging functionality."""

    def test_file_handler_created_when_enabled(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            log_dir = Path(tmpdir) / "new_logs"
            with patch("cowork_ai.core.logging_config.LOG_FILE_DIR", str(log_dir)):
                with patch("cowork_ai.core.logging_config.ENABLE_FILE_LOGGING", True):
                    setup_logging(log_level="ERROR", enable_file=True)

                    handler = _file_handler()
                    assert handler is not None
                    # File handler should always be DEBUG
                    assert handler.level == logging.DEBUG
                    assert log_dir.exists()
                    handler.close()
            setup_logging(enable_file=False)

    def test_file_handler_requires_global_switch(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("cowork_ai.core.logging_config.LOG_FILE_DIR", tmpdir):
                with patch("cowork_ai.core.logging_config.ENABLE_FILE_LOGGING", False):
                    setup_logging(enable_file=True)

                    assert _file_handler() is None

    def test_setup_logging_removes_existing_handlers(self):
        setup_logging(enable_file=False)
        setup_logging(enable_file=False)

        assert len(logging.getLogger().handlers) == 1


class TestSetupLoggingModuleSpecificLevels:
    @pytest.mark.parametrize(
        "module_name,expected_level",
        [
            ("cowork_ai.agent_core", logging.DEBUG),
            ("cowork_ai.agent_core.runtime", logging.DEBUG),
            ("cowork_ai.agent_core.providers", logging.INFO),
            ("cowork_ai.agent_core.repos", logging.INFO),
            ("httpx", logging.WARNING),
            ("openai", logging.WARNING),
        ],
    )
    def test_module_specific_log_levels(self, module_name, expected_level):
        setup_logging(enable_file=False)

        assert logging.getLogger(module_name).level == expected_level

    def test_all_module_log_levels_configured(self):
        setup_logging(enable_file=False)

        for module_name, expected_level_str in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == getattr(logging, expected_level_str)


class TestGetLogger:
    def test_get_logger_same_name_returns_same_instance(self):
        assert get_logger("same_module") is get_logger("same_module")

    @pytest.mark.parametrize("module_name", ["cowork_ai.agent_core.tools", "custom_module"])
    def test_get_logger_with_various_names(self, module_name):
        logger = get_logger(module_name)

        assert isinstance(logger, logging.Logger)
        assert logger.name == module_name
