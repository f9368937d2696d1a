"""
Tests for Settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from funcdeploy.core.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SCW_SECRET_KEY", "SCW_DEFAULT_PROJECT_ID", "SCW_DEFAULT_REGION", "SCW_API_URL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.secret_key is None
    assert settings.region == "fr-par"
    assert settings.api_url == "https://api.scaleway.com"
    assert settings.poll_interval_seconds == 2.0
    assert settings.max_extract_size_bytes == 100 * 1024 * 1024
    assert settings.log_format == "json"


def test_scaleway_variables(monkeypatch):
    monkeypatch.setenv("SCW_SECRET_KEY", "key")
    monkeypatch.setenv("SCW_DEFAULT_PROJECT_ID", "proj")
    monkeypatch.setenv("SCW_DEFAULT_REGION", "pl-waw")

    settings = Settings(_env_file=None)

    assert settings.secret_key == "key"
    assert settings.project_id == "proj"
    assert settings.region == "pl-waw"


def test_prefixed_variables(monkeypatch):
    monkeypatch.setenv("FUNCDEPLOY_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("FUNCDEPLOY_MAX_EXTRACT_SIZE_MB", "10")
    monkeypatch.setenv("FUNCDEPLOY_LOG_FORMAT", "CONSOLE")

    settings = Settings(_env_file=None)

    assert settings.poll_interval_seconds == 0.5
    assert settings.max_extract_size_bytes == 10 * 1024 * 1024
    assert settings.log_format == "console"


@pytest.mark.parametrize(
    "field,value",
    [
        ("poll_interval_seconds", 0),
        ("request_timeout_seconds", -1),
        ("transfer_timeout_seconds", 0),
        ("max_extract_size_mb", 0),
        ("log_format", "xml"),
        ("log_level", "LOUD"),
    ],
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})
