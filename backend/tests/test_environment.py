import pytest
from pydantic import ValidationError

from utils.environment import Settings, clean_openai_key


def load_settings():
    return Settings(_env_file=None)


def test_fractional_timeout_is_read_from_env(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "2.5")
    assert load_settings().request_timeout_seconds == 2.5


def test_numeric_and_boolean_settings(monkeypatch):
    monkeypatch.setenv("OPENAI_MAX_RETRIES", "5")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "7")
    monkeypatch.setenv("STORAGE_OBFUSCATE", "true")
    monkeypatch.setenv("STORAGE_MAX_AGE_SECONDS", "3600")

    settings = load_settings()
    assert settings.max_retries == 5
    assert settings.rate_limit_max_requests == 7
    assert settings.storage_obfuscate is True
    assert settings.storage_max_age_seconds == 3600


def test_empty_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("STORAGE_MAX_AGE_SECONDS", "")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "")
    settings = load_settings()
    assert settings.storage_max_age_seconds == 86400
    assert settings.request_timeout_seconds == 30


def test_invalid_values_are_rejected(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValidationError):
        load_settings()


def test_allowed_origins_list(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:5173, https://app.example.com,")
    assert load_settings().allowed_origins_list == ["http://localhost:5173", "https://app.example.com"]

    monkeypatch.setenv("ALLOWED_ORIGINS", " , ")
    assert load_settings().allowed_origins_list == ["*"]


def test_openai_key_is_cleaned(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "  sk-test-0123456789abcdefghij \n")
    assert load_settings().openai_api_key == "sk-test-0123456789abcdefghij"

    monkeypatch.setenv("OPENAI_API_KEY", "not-a-key")
    assert load_settings().openai_api_key is None
    assert clean_openai_key("sk-short") is None
