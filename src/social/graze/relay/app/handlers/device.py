"""
Device Pairing Handlers

A signed-in browser user starts pairing and is shown a short device code. The user types
that code into the desktop client, which claims it and receives a session token. The
desktop client then authenticates passthrough calls with the session token instead of a
Discord token.

The handlers in this module provide the following endpoints:
- POST /api/device/start - Issue a device code for the Discord token in the bearer header
- POST /api/device/claim - Trade a device code for a session token
"""

import logging
from typing import Optional
from aiohttp import web

from social.graze.relay.app.config import (
    DeviceCodeStoreAppKey,
    DiscordClientAppKey,
    MetricsClientAppKey,
    SessionStoreAppKey,
)
from social.graze.relay.app.handlers.helpers import (
    bearer_token,
    error_response,
    json_body,
    server_error,
)
from social.graze.relay.discord.oauth import DiscordUser
from social.graze.relay.model.pairing import PairingException

logger = logging.getLogger(__name__)


async def handle_device_start(request: web.Request) -> web.Response:
    """
    Issue a device code.

    The bearer token must be a Discord access token. It is checked against ``/users/@me``
    before a code is issued, and stored with the code so the claiming device inherits it.
    """
    discord_client = request.app[DiscordClientAppKey]
    device_codes = request.app[DeviceCodeStoreAppKey]
    metrics_client = request.app[MetricsClientAppKey]

    try:
        access_token = bearer_token(request)
        if access_token is None:
            return error_response(401, "missing_bearer_token")

        me_response = await discord_client.get_current_user(access_token)
        if not me_response.ok:
            metrics_client.increment(
                "relay.device.start.unauthorized",
                1,
                tag_dict={"status": me_response.status},
            )
            return error_response(
                401, "discord_unauthorized", details=me_response.text
            )
        me = DiscordUser.model_validate(me_response.json())

        device_code = device_codes.issue(me.id, access_token)

        metrics_client.increment("relay.device.start.issued", 1)
        logger.info("Issued device code for user %s", me.id)
        return web.json_response(
            {"device_code": device_code.code, "expires_at": device_code.expires_at}
        )
    except web.HTTPException:
        raise
    except Exception as e:
        return await server_error(request, e, "handle_device_start")


async def handle_device_claim(request: web.Request) -> web.Response:
    """
    Claim a device code and create a session.

    Request Body (JSON):
        device_code: The code shown to the user
        device_name: Optional label for the claiming device

    The Discord token stored with the code is re-validated before the session is created.
    If Discord rejects it the code is released again, so the user can retry after signing
    in anew without having to issue a fresh code.
    """
    discord_client = request.app[DiscordClientAppKey]
    device_codes = request.app[DeviceCodeStoreAppKey]
    sessions = request.app[SessionStoreAppKey]
    metrics_client = request.app[MetricsClientAppKey]

    try:
        body = await json_body(request)
        code: Optional[str] = body.get("device_code", None)
        if not code or not isinstance(code, str):
            return error_response(400, "missing_code")

        device_name: Optional[str] = body.get("device_name", None)
        if not isinstance(device_name, str):
            device_name = None

        try:
            device_code = device_codes.reserve(code)
        except PairingException as e:
            metrics_client.increment(
                "relay.device.claim.rejected", 1, tag_dict={"error": e.error}
            )
            return error_response(400, e.error)

        try:
            me_response = await discord_client.get_current_user(
                device_code.access_token
            )
            if not me_response.ok:
                device_codes.release(code)
                metrics_client.increment(
                    "relay.device.claim.unauthorized",
                    1,
                    tag_dict={"status": me_response.status},
                )
                return error_response(
                    401, "discord_unauthorized", details=me_response.text
                )
            me = DiscordUser.model_validate(me_response.json())

            session = sessions.create(
                device_code.user_id, device_code.access_token, device_name
            )
        except Exception:
            device_codes.release(code)
            raise

        device_codes.consume(code)

        metrics_client.increment("relay.device.claim.paired", 1)
        logger.info(
            "Paired device %r for user %s", session.device_name, session.user_id
        )
        return web.json_response(
            {
                "session_token": session.token,
                "user": me.model_dump(),
                "expires_at": session.expires_at,
            }
        )
    except web.HTTPException:
        raise
    except Exception as e:
        return await server_error(request, e, "handle_device_claim")
