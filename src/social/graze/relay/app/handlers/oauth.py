"""
Discord OAuth Handlers

This module implements the web request handler that completes a Discord login started in
a browser.

OAuth Flow:
1. The web front end sends the user to Discord's authorize page
2. Discord redirects back to the front end with an authorization code
3. The front end posts the code here
4. The relay exchanges the code using its client secret and looks up the user
5. The front end receives the user profile and the Discord access token, which it can
   then use to start device pairing

The handlers in this module provide the following endpoints:
- POST /api/auth/discord - Exchange an authorization code for a token and user profile
"""

import logging
from typing import Optional
from aiohttp import web

from social.graze.relay.app.config import (
    DiscordClientAppKey,
    MetricsClientAppKey,
    SettingsAppKey,
)
from social.graze.relay.app.handlers.helpers import (
    error_response,
    json_body,
    server_error,
)
from social.graze.relay.discord.oauth import OAuthException, exchange_authorization_code

logger = logging.getLogger(__name__)


async def handle_discord_auth(request: web.Request) -> web.Response:
    """
    Handle POST request exchanging a Discord authorization code.

    Request Body (JSON):
        code: Authorization code from the Discord redirect
        redirect_uri: Optional redirect URI used in the authorization request

    Returns:
        200 with ``user``, ``oauth`` and ``access_token``; 400 with ``missing_code``,
        ``token_exchange_failed`` or ``user_fetch_failed``; 500 with ``server_error``
    """
    settings = request.app[SettingsAppKey]
    discord_client = request.app[DiscordClientAppKey]
    metrics_client = request.app[MetricsClientAppKey]

    try:
        body = await json_body(request)
        code: Optional[str] = body.get("code", None)
        if not code or not isinstance(code, str):
            return error_response(400, "missing_code")

        redirect_uri: Optional[str] = body.get("redirect_uri", None)
        if not isinstance(redirect_uri, str):
            redirect_uri = None

        try:
            result = await exchange_authorization_code(
                settings, discord_client, code, redirect_uri
            )
        except OAuthException as e:
            metrics_client.increment(
                "relay.oauth.failed", 1, tag_dict={"error": e.error}
            )
            return error_response(400, e.error, details=e.details)

        metrics_client.increment("relay.oauth.exchanged", 1)
        logger.info("Exchanged authorization code for user %s", result["user"]["id"])
        return web.json_response(result)
    except web.HTTPException:
        raise
    except Exception as e:
        return await server_error(request, e, "handle_discord_auth")
