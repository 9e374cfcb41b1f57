"""
Discord OAuth Code Exchange

This module completes the Discord OAuth 2.0 authorization code grant (RFC 6749 section 4.1)
on behalf of a browser front end. The browser receives the authorization code on its own
redirect page and posts it to the relay, which holds the client secret.

The exchange is performed in two steps:
1. The code is traded for an access token at ``/oauth2/token``
2. The access token is used to fetch the user's profile from ``/users/@me``

Failures at either step are reported with the provider's response body attached so the
front end can show what Discord said.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from social.graze.relay.app.config import Settings
from social.graze.relay.discord.client import DiscordClient

logger = logging.getLogger(__name__)


class DiscordUser(BaseModel):
    """
    The subset of a Discord user object that is returned to clients.

    Unknown fields in the provider response are ignored. Numeric values are accepted for
    string fields and converted, so a snowflake sent as a JSON number still parses.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    """Snowflake id of the user"""

    username: Optional[str] = None
    """Unique username"""

    global_name: Optional[str] = None
    """Display name, if set"""

    avatar: Optional[str] = None
    """Avatar hash"""

    email: Optional[str] = None
    """Email address, only present with the ``email`` scope"""


class OAuthException(Exception):
    """
    Raised when the code exchange fails.

    Attributes:
        error: Error code returned to the client
        details: Provider response body, decoded from JSON where possible
    """

    def __init__(self, error: str, details: Any = None) -> None:
        super().__init__(error)
        self.error = error
        self.details = details

    @staticmethod
    def token_exchange_failed(details: Any) -> "OAuthException":
        return OAuthException("token_exchange_failed", details)

    @staticmethod
    def user_fetch_failed(details: Any) -> "OAuthException":
        return OAuthException("user_fetch_failed", details)


def parse_user(body: Any) -> Optional[DiscordUser]:
    """Validate a ``/users/@me`` body, returning None when it is not a user object."""
    if not isinstance(body, dict):
        return None
    try:
        return DiscordUser.model_validate(body)
    except ValidationError:
        return None


async def exchange_authorization_code(
    settings: Settings,
    discord_client: DiscordClient,
    code: str,
    redirect_uri: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Exchange an authorization code and look up the user it belongs to.

    Args:
        settings: Application settings holding the client credentials
        discord_client: Upstream API client
        code: Authorization code from the OAuth redirect
        redirect_uri: Redirect URI used in the authorization request. Falls back to the
            configured redirect URI.

    Returns:
        Dict with ``user``, ``oauth`` (scope and token type) and ``access_token``

    Raises:
        OAuthException: If the token exchange or the user lookup fails
    """
    token_response = await discord_client.exchange_code(
        settings.discord_client_id,
        settings.discord_client_secret,
        code,
        redirect_uri or settings.discord_redirect_uri,
    )
    token_data = token_response.json_or_text()
    if (
        not token_response.ok
        or not isinstance(token_data, dict)
        or "access_token" not in token_data
    ):
        logger.error(
            "Token exchange failed: %s %s", token_response.status, token_response.text
        )
        raise OAuthException.token_exchange_failed(token_data)

    access_token: str = token_data["access_token"]

    user_response = await discord_client.get_current_user(access_token)
    user_body = user_response.json_or_text()
    user = parse_user(user_body)
    if user is None:
        logger.error(
            "User fetch failed: %s %s", user_response.status, user_response.text
        )
        raise OAuthException.user_fetch_failed(user_body)

    return {
        "user": user.model_dump(),
        "oauth": {
            "scope": token_data.get("scope"),
            "token_type": token_data.get("token_type"),
        },
        "access_token": access_token,
    }
