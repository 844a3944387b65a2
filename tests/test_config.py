"""Tests for settings and logging configuration."""

import io
from pathlib import Path

import pytest
from loguru import logger
from pydantic import ValidationError

from area_client.config import Settings
from area_client.log import configure_logging


def test_defaults():
    settings = Settings(AREA_API_URL="http://localhost:8080", _env_file=None)
    assert settings.AREA_TOKEN_REFRESH_BUFFER_SECONDS == 300
    assert settings.refresh_buffer_ms == 300_000
    assert settings.AREA_LOGS_DEFAULT_LIMIT == 50
    assert settings.AREA_CREDENTIALS_FILE is None


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("AREA_API_URL", "https://area.example.com/")
    monkeypatch.setenv("area_log_level", "debug")
    settings = Settings(_env_file=None)
    assert settings.api_base_url == "https://area.example.com"
    assert settings.AREA_LOG_LEVEL == "DEBUG"


def test_api_url_is_required(monkeypatch):
    monkeypatch.delenv("AREA_API_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("value", ["", "/api", "backend.test", "ftp://backend.test"])
def test_api_url_must_be_absolute_http(value):
    with pytest.raises(ValidationError):
        Settings(AREA_API_URL=value, _env_file=None)


def test_api_url_keeps_path_prefix():
    settings = Settings(AREA_API_URL="http://localhost:8080/backend/", _env_file=None)
    assert settings.api_base_url == "http://localhost:8080/backend"


def test_credentials_path_is_expanded():
    settings = Settings(AREA_CREDENTIALS_FILE="~/creds.json", _env_file=None)
    assert settings.AREA_CREDENTIALS_FILE == Path("~/creds.json").expanduser()


@pytest.mark.parametrize("field, value", [
    ("AREA_LOG_LEVEL", "LOUD"),
    ("AREA_LOGS_DEFAULT_LIMIT", 0),
    ("AREA_TOKEN_REFRESH_BUFFER_SECONDS", -1),
])
def test_rejects_bad_values(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value}, _env_file=None)


def test_configure_logging_replaces_its_sink():
    first, second = io.StringIO(), io.StringIO()
    configure_logging("INFO", sink=first)
    handler_id = configure_logging("WARNING", sink=second)
    try:
        logger.info("quiet")
        logger.warning("loud")
        assert first.getvalue() == ""
        assert "loud" in second.getvalue()
        assert "quiet" not in second.getvalue()
    finally:
        logger.remove(handler_id)
