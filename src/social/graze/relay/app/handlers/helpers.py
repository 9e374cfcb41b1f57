import logging
from typing import Any, Dict, Optional
from aiohttp import hdrs, web
import sentry_sdk

from social.graze.relay.app.config import (
    HealthGaugeAppKey,
    MetricsClientAppKey,
    SessionStoreAppKey,
)

logger = logging.getLogger(__name__)


def bearer_token(request: web.Request) -> Optional[str]:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    Returns None when the header is missing, uses another scheme, or carries an empty token.
    """
    authorization: Optional[str] = request.headers.getone(hdrs.AUTHORIZATION, None)
    if (
        authorization is None
        or not authorization.startswith("Bearer ")
        or len(authorization) < 8
    ):
        return None
    return authorization[7:]


def resolve_provider_token(request: web.Request) -> Optional[str]:
    """
    Resolve the request's bearer token to a Discord access token.

    A live session token resolves to the Discord token stored on the session. Anything
    else, including an expired session token, is assumed to be a Discord token already
    and is passed through unchanged.
    """
    token = bearer_token(request)
    if token is None:
        return None

    session = request.app[SessionStoreAppKey].resolve(token)
    if session is not None:
        return session.access_token
    return token


async def json_body(request: web.Request) -> Dict[str, Any]:
    """Decode a JSON object request body, treating anything else as an empty object."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        return {}
    return body


def error_response(status: int, error: str, **extra: Any) -> web.Response:
    return web.json_response(status=status, data={"error": error, **extra})


async def server_error(request: web.Request, e: Exception, where: str) -> web.Response:
    """
    Report an unexpected handler exception and build the generic 500 response.

    The exception is logged with its traceback, sent to Sentry, counted, and bumps the
    health gauge.
    """
    logger.exception("Unexpected error in %s", where)
    sentry_sdk.capture_exception(e)
    request.app[MetricsClientAppKey].increment(
        "relay.handler.exception",
        1,
        tag_dict={"exception": type(e).__name__, "handler": where},
    )
    await request.app[HealthGaugeAppKey].womp()
    return error_response(500, "server_error")
