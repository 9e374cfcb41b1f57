import logging
from time import time
from aiohttp import web

from social.graze.relay.app.config import DiscordClientAppKey, MetricsClientAppKey
from social.graze.relay.app.handlers.helpers import (
    error_response,
    resolve_provider_token,
    server_error,
)
from social.graze.relay.discord.client import DiscordResponse

logger = logging.getLogger(__name__)


def relay_discord_response(discord_response: DiscordResponse) -> web.Response:
    """Relay a successful upstream body verbatim, or wrap a failure as ``discord_error``."""
    if not discord_response.ok:
        return error_response(
            discord_response.status, "discord_error", body=discord_response.text
        )
    return discord_response.to_web_response()


async def handle_me(request: web.Request) -> web.Response:
    metrics_client = request.app[MetricsClientAppKey]

    try:
        access_token = resolve_provider_token(request)
        if access_token is None:
            metrics_client.increment(
                "relay.proxy.unauthorized", 1, tag_dict={"endpoint": "me"}
            )
            return error_response(401, "missing_token")

        start_time = time()
        try:
            discord_response = await request.app[
                DiscordClientAppKey
            ].get_current_user(access_token)
        finally:
            metrics_client.timer(
                "relay.proxy.request.time",
                time() - start_time,
                tag_dict={"endpoint": "me"},
            )
        return relay_discord_response(discord_response)
    except web.HTTPException:
        raise
    except Exception as e:
        return await server_error(request, e, "handle_me")


async def handle_guilds(request: web.Request) -> web.Response:
    metrics_client = request.app[MetricsClientAppKey]

    try:
        access_token = resolve_provider_token(request)
        if access_token is None:
            metrics_client.increment(
                "relay.proxy.unauthorized", 1, tag_dict={"endpoint": "guilds"}
            )
            return error_response(401, "missing_bearer_token")

        start_time = time()
        try:
            discord_response = await request.app[
                DiscordClientAppKey
            ].get_current_user_guilds(access_token)
        finally:
            metrics_client.timer(
                "relay.proxy.request.time",
                time() - start_time,
                tag_dict={"endpoint": "guilds"},
            )
        return relay_discord_response(discord_response)
    except web.HTTPException:
        raise
    except Exception as e:
        return await server_error(request, e, "handle_guilds")
