"""Tests for configuration helpers."""

from zoneinfo import ZoneInfo

from quickqr_client.config import DEFAULT_CREDENTIAL_KEY, Settings, resolve_timezone


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("QUICKQR_API_BASE_URL", "https://qr.example.com/api")
    monkeypatch.setenv("QUICKQR_HISTORY_RETRY_ATTEMPTS", "3")

    settings = Settings()

    assert settings.api_base_url == "https://qr.example.com/api"
    assert settings.history_retry_attempts == 3
    assert settings.credential_storage_key == DEFAULT_CREDENTIAL_KEY


def test_resolve_timezone() -> None:
    assert resolve_timezone(None) is None
    assert resolve_timezone(" local ") is None
    assert resolve_timezone("UTC") == ZoneInfo("UTC")
