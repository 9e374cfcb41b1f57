import asyncio
import logging
from typing import NoReturn, Optional, Tuple
from aiohttp import web
import sentry_sdk

from social.graze.relay.app.config import (
    DeviceCodeStoreAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionStoreAppKey,
    SettingsAppKey,
)
from social.graze.relay.app.metrics import MetricsClient
from social.graze.relay.model.pairing import DeviceCodeStore, SessionStore, now_ms

logger = logging.getLogger(__name__)


def sweep_expired(
    device_codes: DeviceCodeStore,
    sessions: SessionStore,
    metrics_client: MetricsClient,
    now: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Remove expired sessions and spent device codes.

    Returns:
        Tuple of (device codes removed, sessions removed)
    """
    if now is None:
        now = now_ms()

    removed_codes = device_codes.sweep(now)
    removed_sessions = sessions.sweep(now)

    if removed_codes > 0 or removed_sessions > 0:
        logger.info(
            "Swept %d device codes and %d sessions", removed_codes, removed_sessions
        )

    metrics_client.increment("relay.task.sweep.device_codes_removed", removed_codes)
    metrics_client.increment("relay.task.sweep.sessions_removed", removed_sessions)
    metrics_client.gauge("relay.store.device_codes", len(device_codes))
    metrics_client.gauge("relay.store.sessions", len(sessions))

    return removed_codes, removed_sessions


async def sweep_task(app: web.Application) -> NoReturn:
    """
    Background task that periodically sweeps the in-memory stores.

    Runs every ``sweep_interval`` seconds. A failed sweep is reported and the loop
    carries on.
    """
    logger.info("Starting expiry sweep task")

    settings = app[SettingsAppKey]
    device_codes = app[DeviceCodeStoreAppKey]
    sessions = app[SessionStoreAppKey]
    metrics_client = app[MetricsClientAppKey]

    while True:
        await asyncio.sleep(settings.sweep_interval)
        try:
            sweep_expired(device_codes, sessions, metrics_client)
        except Exception as e:
            sentry_sdk.capture_exception(e)
            logger.exception("Expiry sweep failed")


async def tick_health_task(app: web.Application) -> NoReturn:
    """
    Tick the health gauge every second, reducing the health score by 1 each time.
    """

    logger.info("Starting health gauge task")

    health_gauge = app[HealthGaugeAppKey]
    while True:
        await health_gauge.tick()
        await asyncio.sleep(1)
