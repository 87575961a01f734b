"""
Tests for logging setup — level resolution and handlers.
"""

import logging
from pathlib import Path

import pytest

from lxguest.core.observability.logging_config import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flags_win_over_env(self, monkeypatch):
        monkeypatch.setenv("LXG_LOG_LEVEL", "ERROR")
        assert resolve_level(debug=True) == "DEBUG"
        assert resolve_level(verbose=True) == "INFO"

    def test_env_then_default(self, monkeypatch):
        monkeypatch.setenv("LXG_LOG_LEVEL", "INFO")
        assert resolve_level() == "INFO"
        monkeypatch.delenv("LXG_LOG_LEVEL")
        assert resolve_level() == "WARNING"

    def test_quiet(self):
        assert resolve_level(quiet=True) == "ERROR"


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_unknown_level_is_warning(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler_can_be_more_verbose(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "lxguest.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("lxguest.test").debug("trail entry")
        for handler in root.handlers:
            handler.flush()
        assert "trail entry" in log_file.read_text()
