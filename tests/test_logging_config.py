"""
Tests for logging_config.py - root logger setup used by the CLI.
"""

import logging

import pytest

from manifold.cli import main
from manifold.logging_config import configure_logging


@pytest.fixture
def fresh_root(monkeypatch, tmp_path):
    """Swap in an unconfigured root logger and run from an empty directory."""
    root = logging.RootLogger(logging.WARNING)
    monkeypatch.setattr(logging, "root", root)
    monkeypatch.chdir(tmp_path)
    yield root
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


class TestConfigureLogging:

    def test_console_only(self, fresh_root, tmp_path):
        """Without a log file only a console handler is attached."""
        assert configure_logging(logging.DEBUG, log_file=None) is True
        assert [type(h) for h in fresh_root.handlers] == [logging.StreamHandler]
        assert fresh_root.level == logging.DEBUG
        assert not (tmp_path / "logs").exists()

    def test_file_handler_creates_directory(self, fresh_root, tmp_path):
        """A log file path gets its parent directory created and receives records."""
        target = tmp_path / "nested" / "run.log"
        configure_logging(log_file=target)
        assert any(isinstance(h, logging.FileHandler) for h in fresh_root.handlers)
        fresh_root.info("hello")
        for handler in fresh_root.handlers:
            handler.flush()
        assert "hello" in target.read_text(encoding="utf-8")

    def test_idempotent(self, fresh_root):
        """A second call leaves the existing handlers alone."""
        assert configure_logging(log_file=None) is True
        assert configure_logging(log_file=None) is False
        assert len(fresh_root.handlers) == 1


class TestCliLogging:

    def test_no_log_file_flag(self, fresh_root, tmp_path, capsys):
        """--no-log-file keeps the CLI off the filesystem."""
        assert main(["--no-log-file", "archetypes"]) == 0
        assert not (tmp_path / "logs").exists()
        assert not any(isinstance(h, logging.FileHandler) for h in fresh_root.handlers)

    def test_log_file_option(self, fresh_root, tmp_path, capsys):
        """--log-file redirects the file handler."""
        assert main(["--log-file", "custom/cli.log", "archetypes"]) == 0
        assert (tmp_path / "custom" / "cli.log").exists()
