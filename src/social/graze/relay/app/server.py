import asyncio
import contextlib
import logging
from time import time
from typing import (
    Optional,
)
from aiohttp import hdrs, web
import aiohttp
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.graze.relay.app.config import (
    DeviceCodeStoreAppKey,
    DiscordClientAppKey,
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    SessionStoreAppKey,
    Settings,
    SettingsAppKey,
    SweepTaskAppKey,
    TickHealthTaskAppKey,
)
from social.graze.relay.app.cors import get_cors_headers
from social.graze.relay.app.handlers.device import (
    handle_device_claim,
    handle_device_start,
)
from social.graze.relay.app.handlers.internal import (
    handle_health,
    handle_internal_alive,
    handle_internal_ready,
)
from social.graze.relay.app.handlers.oauth import handle_discord_auth
from social.graze.relay.app.handlers.proxy import handle_guilds, handle_me
from social.graze.relay.app.metrics import create_metrics_client
from social.graze.relay.app.tasks import sweep_task, tick_health_task
from social.graze.relay.discord.client import DiscordClient
from social.graze.relay.model.health import HealthGauge
from social.graze.relay.model.pairing import DeviceCodeStore, SessionStore

logger = logging.getLogger(__name__)


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    metrics_client = create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        debug=settings.debug,
    )
    await metrics_client.connect()
    app[MetricsClientAppKey] = metrics_client

    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logger.debug("Starting request: %s %s", params.method, params.url)

        async def on_request_end(
            session, trace_config_ctx, params: aiohttp.TraceRequestEndParams
        ):
            logger.debug(
                "Ending request: %s %s %s",
                params.method,
                params.url,
                params.response.status,
            )

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    http_session = aiohttp.ClientSession(trace_configs=[trace_config])
    app[SessionAppKey] = http_session
    app[DiscordClientAppKey] = DiscordClient(
        http_session, settings.discord_api_base, metrics_client
    )

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))
    app[SweepTaskAppKey] = asyncio.create_task(sweep_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()
    app[SweepTaskAppKey].cancel()

    with contextlib.suppress(asyncio.CancelledError):
        await app[TickHealthTaskAppKey]

    with contextlib.suppress(asyncio.CancelledError):
        await app[SweepTaskAppKey]

    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def cors_middleware(request: web.Request, handler):
    cors_headers = get_cors_headers(request.headers.get(hdrs.ORIGIN))

    if request.method == hdrs.METH_OPTIONS:
        return web.Response(status=204, headers=cors_headers)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(cors_headers)
        raise

    response.headers.update(cors_headers)
    return response


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def metrics_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    request_path = request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise
    except Exception as e:
        metrics_client.increment(
            "relay.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "relay.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "relay.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(
        middlewares=[cors_middleware, metrics_middleware, sentry_middleware]
    )

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge(
        health_threshold=settings.health_threshold, decay=settings.health_decay
    )
    app[DeviceCodeStoreAppKey] = DeviceCodeStore(settings.device_code_ttl)
    app[SessionStoreAppKey] = SessionStore(
        settings.session_ttl, settings.default_device_name
    )

    app.add_routes(
        [
            web.get("/api/health", handle_health),
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
        ]
    )

    app.add_routes([web.post("/api/auth/discord", handle_discord_auth)])

    app.add_routes(
        [
            web.post("/api/device/start", handle_device_start),
            web.post("/api/device/claim", handle_device_claim),
        ]
    )

    app.add_routes(
        [
            web.get("/api/me", handle_me),
            web.get("/api/discord/guilds", handle_guilds),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
