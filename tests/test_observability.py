"""
Tests for logging configuration.
"""

import logging
from pathlib import Path

import pytest

from provisioner.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    ENV_LEVEL,
    resolve_level,
    setup_from_env,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flags_win(self, monkeypatch):
        monkeypatch.setenv(ENV_LEVEL, "ERROR")
        assert resolve_level(debug=True) == "DEBUG"
        assert resolve_level(verbose=True) == "INFO"

    def test_quiet(self, monkeypatch):
        monkeypatch.delenv(ENV_LEVEL, raising=False)
        assert resolve_level(quiet=True) == "ERROR"

    def test_env_then_default(self, monkeypatch):
        monkeypatch.setenv(ENV_LEVEL, "INFO")
        assert resolve_level() == "INFO"
        monkeypatch.delenv(ENV_LEVEL)
        assert resolve_level() == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self):
        setup_logging("CHATTY")
        assert logging.getLogger().level == logging.WARNING

    def test_file_gets_more_detail(self, tmp_path: Path):
        log_file = tmp_path / "provision.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

        logging.getLogger("provisioner.test").debug("probe detail")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "probe detail" in log_file.read_text()

    def test_setup_from_env(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(ENV_FILE, str(log_file))
        monkeypatch.setenv(ENV_FILE_LEVEL, "INFO")
        setup_from_env("ERROR")
        logging.getLogger("provisioner.test").info("from env")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "from env" in log_file.read_text()
