"""Tests for application logging setup."""

import logging

import pytest

from settings_cloud.config import Settings, get_settings
from settings_cloud.main import setup_logging


@pytest.fixture
def restore_logging():
    """Reset the package logger to env settings after each test."""
    yield
    setup_logging(get_settings())


def test_stderr_only_by_default(restore_logging) -> None:
    logger = setup_logging(Settings(log_level="debug", log_file=""))
    assert logger.level == logging.DEBUG
    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_log_file_handler(tmp_path, restore_logging) -> None:
    """A configured log file gets its own handler and receives records."""
    path = tmp_path / "service.log"
    logger = setup_logging(Settings(log_level="INFO", log_file=str(path)))
    assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    logging.getLogger("settings_cloud.test").info("hello from test")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from test" in path.read_text(encoding="utf-8")


def test_unopenable_log_file_falls_back_to_stderr(tmp_path, restore_logging) -> None:
    logger = setup_logging(Settings(log_file=str(tmp_path / "missing" / "service.log")))
    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_unknown_level_defaults_to_info(restore_logging) -> None:
    assert setup_logging(Settings(log_level="chatty", log_file="")).level == logging.INFO
