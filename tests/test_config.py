"""
Unit tests for relay settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from social.graze.relay.app.config import Settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Run every test away from any .env file and relay variables."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "DISCORD_CLIENT_ID",
        "DISCORD_CLIENT_SECRET",
        "DISCORD_REDIRECT_URI",
        "DISCORD_API_BASE",
        "PORT",
        "DEVICE_CODE_TTL",
        "SESSION_TTL",
        "SWEEP_INTERVAL",
        "METRICS_BACKEND",
        "TELEGRAF_HOST",
        "DEBUG",
        "HEALTH_THRESHOLD",
        "HEALTH_DECAY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(discord_client_id="id", discord_client_secret="secret")

    assert settings.debug is False
    assert settings.http_port == 3000
    assert settings.discord_api_base == "https://discord.com/api"
    assert settings.discord_redirect_uri == ""
    assert settings.device_code_ttl == 600
    assert settings.session_ttl == 30 * 24 * 60 * 60
    assert settings.default_device_name == "Windows"
    assert settings.sweep_interval == 3600
    assert settings.sentry_dsn is None
    assert settings.metrics_backend == "none"
    assert settings.statsd_host == "telegraf"
    assert settings.statsd_port == 8125
    assert settings.health_threshold == 100
    assert settings.health_decay == 1


def test_client_credentials_are_required():
    with pytest.raises(ValidationError):
        Settings()  # type: ignore


def test_from_environment(monkeypatch):
    monkeypatch.setenv("DISCORD_CLIENT_ID", "env-id")
    monkeypatch.setenv("DISCORD_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("DISCORD_REDIRECT_URI", "https://app.example.com/callback")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DEVICE_CODE_TTL", "120")
    monkeypatch.setenv("TELEGRAF_HOST", "statsd.internal")
    monkeypatch.setenv("DEBUG", "true")

    settings = Settings()  # type: ignore

    assert settings.discord_client_id == "env-id"
    assert settings.discord_client_secret == "env-secret"
    assert settings.discord_redirect_uri == "https://app.example.com/callback"
    assert settings.http_port == 8080
    assert settings.device_code_ttl == 120
    assert settings.statsd_host == "statsd.internal"
    assert settings.debug is True


def test_from_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text(
        "DISCORD_CLIENT_ID=file-id\nDISCORD_CLIENT_SECRET=file-secret\n"
    )

    settings = Settings()  # type: ignore

    assert settings.discord_client_id == "file-id"
    assert settings.discord_client_secret == "file-secret"


def test_api_base_trailing_slash_is_stripped():
    settings = Settings(
        discord_client_id="id",
        discord_client_secret="secret",
        discord_api_base="https://discord.com/api/v10/",
    )
    assert settings.discord_api_base == "https://discord.com/api/v10"


@pytest.mark.parametrize(
    "field", ["device_code_ttl", "session_ttl", "sweep_interval", "health_decay"]
)
def test_lifetimes_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(discord_client_id="id", discord_client_secret="secret", **{field: 0})


def test_health_gauge_settings(monkeypatch):
    monkeypatch.setenv("HEALTH_THRESHOLD", "25")
    monkeypatch.setenv("HEALTH_DECAY", "5")

    settings = Settings(discord_client_id="id", discord_client_secret="secret")

    assert settings.health_threshold == 25
    assert settings.health_decay == 5
