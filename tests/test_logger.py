"""Tests for loguru setup and environment detection."""

import json
import logging
import sys

import pytest
from loguru import logger

from selorg_client.core.environment import Environment
from selorg_client.core.logger import setup_structured_logging


@pytest.fixture
def restore_logging():
    """Put the default loguru sink and stdlib root back after a test."""
    yield
    logger.remove()
    logger.add(sys.stderr)
    logging.basicConfig(handlers=[], force=True)
    logging.root.setLevel(logging.WARNING)


class TestSetupStructuredLogging:
    """Tests for setup_structured_logging."""

    def test_json_file_sink(self, tmp_path, restore_logging):
        """Test records are serialized to the JSON lines file."""
        setup_structured_logging("INFO", json_format=True, log_dir=tmp_path)

        logger.info("token manager ready")
        logger.complete()

        lines = (tmp_path / "selorg_client.jsonl").read_text().splitlines()
        messages = [json.loads(line)["record"]["message"] for line in lines]
        assert "token manager ready" in messages

    def test_plain_file_sink(self, tmp_path, restore_logging):
        """Test the plain text sink when JSON is disabled."""
        setup_structured_logging("INFO", json_format=False, log_dir=tmp_path)

        logger.warning("plain record")
        logger.complete()

        assert "plain record" in (tmp_path / "selorg_client.log").read_text()

    def test_stdlib_logging_intercepted(self, tmp_path, restore_logging):
        """Test stdlib loggers end up in the loguru sinks."""
        setup_structured_logging("INFO", json_format=False, log_dir=tmp_path)

        logging.getLogger("selorg_client.core.retry").warning("retrying store read")
        logger.complete()

        assert "retrying store read" in (tmp_path / "selorg_client.log").read_text()

    def test_level_filters(self, tmp_path, restore_logging):
        """Test records below the level are dropped."""
        setup_structured_logging("WARNING", json_format=False, log_dir=tmp_path)

        logger.info("hidden")
        logger.complete()

        assert "hidden" not in (tmp_path / "selorg_client.log").read_text()

    def test_console_only(self, tmp_path, restore_logging, monkeypatch):
        """Test no files are created without a log directory."""
        monkeypatch.chdir(tmp_path)
        setup_structured_logging("INFO", log_dir=None)

        assert list(tmp_path.iterdir()) == []


class TestEnvironment:
    """Tests for environment detection."""

    @pytest.mark.parametrize(
        "value,expected",
        [("production", "production"), ("STAGING", "staging"), ("bogus", "development")],
    )
    def test_current(self, monkeypatch, value, expected):
        monkeypatch.setenv("SELORG_ENV", value)
        assert Environment.current() == expected

    def test_default_is_development(self, monkeypatch):
        monkeypatch.delenv("SELORG_ENV", raising=False)
        assert Environment.current() == "development"
        assert Environment.is_development() is True

    def test_is_production(self, monkeypatch):
        monkeypatch.setenv("SELORG_ENV", "production")
        assert Environment.is_production() is True
        assert Environment.is_development() is False

    def test_uses_local_backend(self):
        assert Environment.uses_local_backend("Testing") is True
        assert Environment.uses_local_backend("staging") is False
