"""Tests for settings and logging setup."""

import logging
from pathlib import Path

from lyricsvault.config import Settings
from lyricsvault.logging_config import get_logger, setup_logging


def test_defaults(monkeypatch):
    """Test default configuration values."""
    monkeypatch.delenv("LYRICSVAULT_DB_PATH", raising=False)
    settings = Settings(_env_file=None)

    assert settings.LYRICSVAULT_DB_PATH == Path("data/lyricsvault.db")
    assert settings.LYRICS_PROVIDER_URL == "https://api.lyrics.ovh/v1"
    assert settings.FETCH_MAX_ATTEMPTS == 3
    assert settings.FETCH_BACKOFF_SECONDS == 5.0
    assert settings.FETCH_ENABLED is True


def test_environment_overrides(monkeypatch):
    """Test that environment variables override defaults."""
    monkeypatch.setenv("FETCH_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("FETCH_ENABLED", "false")
    monkeypatch.setenv("LYRICSVAULT_API_KEY", "secret")

    settings = Settings(_env_file=None)

    assert settings.FETCH_MAX_ATTEMPTS == 5
    assert settings.FETCH_ENABLED is False
    assert settings.LYRICSVAULT_API_KEY == "secret"


def test_setup_logging_writes_session_log(tmp_path):
    """Test that setup_logging creates the log file."""
    logger = setup_logging(tmp_path / "logs", level="DEBUG", console=False)
    get_logger("tests").info("hello from tests")

    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "logs" / "lyricsvault.log").read_text()
    assert "LYRICSVAULT SESSION STARTED" in content
    assert "hello from tests" in content

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_setup_logging_rotates_large_file(tmp_path):
    """Test startup rotation of an oversized log file."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    (log_dir / "lyricsvault.log").write_bytes(b"x" * (10 * 1024 * 1024 + 1))

    logger = setup_logging(log_dir, console=False)

    assert (log_dir / "lyricsvault.log.1").exists()
    assert (log_dir / "lyricsvault.log").stat().st_size < 1024 * 1024

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_get_logger_namespaces():
    """Test that loggers live under the package logger."""
    assert get_logger("lyricsvault.core").name == "lyricsvault.core"
    assert get_logger("cli").name == "lyricsvault.cli"
