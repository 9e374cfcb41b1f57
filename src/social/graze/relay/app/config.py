"""
Configuration Module for the Relay

This module defines the configuration system for the relay, using Pydantic for settings
validation and dependency injection through AppKeys.

The Settings class is the central configuration point, loaded from environment variables
(and an optional ``.env`` file) with defaults suitable for development. All application
components access settings and shared resources through typed AppKeys.

Key configuration areas include:
- Service networking and debugging
- Discord OAuth client credentials
- Pairing code and session lifetimes
- Background sweep scheduling
- Monitoring and error reporting
"""

import asyncio
from typing import Final, Optional
import logging
from aiohttp import web
from aiohttp import ClientSession
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from social.graze.relay.app.metrics import MetricsClient
from social.graze.relay.discord.client import DiscordClient
from social.graze.relay.model.health import HealthGauge
from social.graze.relay.model.pairing import DeviceCodeStore, SessionStore


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the relay.

    Environment variables are mapped to fields by name (``DISCORD_CLIENT_ID`` sets
    ``discord_client_id``), with aliases where the variable name differs from the field.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment and debugging settings
    debug: bool = False
    """
    Enable debug mode for verbose logging.
    Set with DEBUG=true environment variable.
    """

    http_port: int = Field(alias="port", default=3000)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    # Discord OAuth client
    discord_client_id: str
    """
    OAuth2 client id of the Discord application (required, no default).
    Set with DISCORD_CLIENT_ID environment variable.
    """

    discord_client_secret: str
    """
    OAuth2 client secret of the Discord application (required, no default).
    Set with DISCORD_CLIENT_SECRET environment variable.
    """

    discord_redirect_uri: str = ""
    """
    Redirect URI used for the code exchange when the caller does not send one.
    Set with DISCORD_REDIRECT_URI environment variable.
    """

    discord_api_base: str = "https://discord.com/api"
    """
    Base URL of the Discord HTTP API, without a trailing slash.
    Set with DISCORD_API_BASE environment variable.
    """

    # Pairing lifetimes
    device_code_ttl: int = 600  # 10 minutes
    """
    Lifetime in seconds of a device pairing code.
    Set with DEVICE_CODE_TTL environment variable.
    """

    session_ttl: int = 2592000  # 30 days
    """
    Lifetime in seconds of a session token issued by a device claim.
    Set with SESSION_TTL environment variable.
    """

    default_device_name: str = "Windows"
    """Device label stored on a session when the claim does not name one."""

    sweep_interval: int = 3600
    """
    Seconds between sweeps of expired device codes and sessions.
    Set with SWEEP_INTERVAL environment variable.
    """

    # Monitoring and error reporting
    health_threshold: int = 100
    """
    Health score above which ``/internal/ready`` reports 503.
    Set with HEALTH_THRESHOLD environment variable.
    """

    health_decay: int = 1
    """
    Health score points drained every second.
    Set with HEALTH_DECAY environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    metrics_backend: str = "none"
    """
    Metrics backend, either ``telegraf`` or ``none``.
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    @field_validator("discord_api_base", mode="after")
    @classmethod
    def strip_api_base(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator(
        "device_code_ttl", "session_ttl", "sweep_interval", "health_decay", mode="after"
    )
    @classmethod
    def positive_seconds(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive number of seconds")
        return v


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

DiscordClientAppKey: Final = web.AppKey("discord_client", DiscordClient)
"""AppKey for accessing the upstream Discord API client"""

DeviceCodeStoreAppKey: Final = web.AppKey("device_code_store", DeviceCodeStore)
"""AppKey for accessing the in-memory device code store"""

SessionStoreAppKey: Final = web.AppKey("session_store", SessionStore)
"""AppKey for accessing the in-memory session store"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for the metrics client"""

SweepTaskAppKey: Final = web.AppKey("sweep_task", asyncio.Task[None])
"""AppKey for the background task that removes expired pairing records"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that decays the health gauge"""
