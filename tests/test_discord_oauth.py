"""
Unit tests for social.graze.relay.discord.oauth

Tests cover user parsing and the two-step authorization code exchange with a mocked
DiscordClient.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from social.graze.relay.app.config import Settings
from social.graze.relay.discord.client import DiscordClient, DiscordResponse
from social.graze.relay.discord.oauth import (
    DiscordUser,
    OAuthException,
    exchange_authorization_code,
    parse_user,
)

USER_BODY = {
    "id": "80351110224678912",
    "username": "nelly",
    "global_name": "Nelly",
    "avatar": "8342729096ea3675442027381ff50dfe",
    "email": "nelly@example.com",
    "mfa_enabled": False,
}

TOKEN_BODY = {
    "access_token": "discord-access-token",
    "token_type": "Bearer",
    "expires_in": 604800,
    "refresh_token": "discord-refresh-token",
    "scope": "identify email",
}


def json_response(status: int, body) -> DiscordResponse:
    return DiscordResponse(status=status, text=json.dumps(body))


@pytest.fixture
def oauth_settings():
    return Settings(
        discord_client_id="cid",
        discord_client_secret="csecret",
        discord_redirect_uri="https://relay.example.com/callback",
    )


@pytest.fixture
def discord_client():
    client = Mock(spec=DiscordClient)
    client.exchange_code = AsyncMock(return_value=json_response(200, TOKEN_BODY))
    client.get_current_user = AsyncMock(return_value=json_response(200, USER_BODY))
    return client


class TestParseUser:
    """Test suite for parse_user."""

    def test_full_user(self):
        user = parse_user(USER_BODY)
        assert user == DiscordUser(
            id="80351110224678912",
            username="nelly",
            global_name="Nelly",
            avatar="8342729096ea3675442027381ff50dfe",
            email="nelly@example.com",
        )

    def test_optional_fields_default_to_none(self):
        user = parse_user({"id": "1", "username": "bot"})
        assert user.model_dump() == {
            "id": "1",
            "username": "bot",
            "global_name": None,
            "avatar": None,
            "email": None,
        }

    def test_numeric_id_becomes_string(self):
        user = parse_user({**USER_BODY, "id": 80351110224678912})
        assert user.id == "80351110224678912"

    @pytest.mark.parametrize(
        "body",
        [
            {"message": "401: Unauthorized", "code": 0},
            {"id": None},
            "Bad Gateway",
            [USER_BODY],
            None,
        ],
    )
    def test_not_a_user(self, body):
        assert parse_user(body) is None


class TestExchangeAuthorizationCode:
    """Test suite for exchange_authorization_code."""

    async def test_success(self, oauth_settings, discord_client):
        result = await exchange_authorization_code(
            oauth_settings, discord_client, "the-code", "https://front.example.com/cb"
        )

        assert result == {
            "user": {
                "id": "80351110224678912",
                "username": "nelly",
                "global_name": "Nelly",
                "avatar": "8342729096ea3675442027381ff50dfe",
                "email": "nelly@example.com",
            },
            "oauth": {"scope": "identify email", "token_type": "Bearer"},
            "access_token": "discord-access-token",
        }
        discord_client.exchange_code.assert_awaited_once_with(
            "cid", "csecret", "the-code", "https://front.example.com/cb"
        )
        discord_client.get_current_user.assert_awaited_once_with(
            "discord-access-token"
        )

    async def test_redirect_uri_falls_back_to_settings(
        self, oauth_settings, discord_client
    ):
        await exchange_authorization_code(oauth_settings, discord_client, "the-code")

        discord_client.exchange_code.assert_awaited_once_with(
            "cid", "csecret", "the-code", "https://relay.example.com/callback"
        )

    async def test_token_exchange_rejected(self, oauth_settings, discord_client):
        error_body = {"error": "invalid_grant", "error_description": "Invalid code"}
        discord_client.exchange_code.return_value = json_response(400, error_body)

        with pytest.raises(OAuthException) as exc_info:
            await exchange_authorization_code(oauth_settings, discord_client, "bad")

        assert exc_info.value.error == "token_exchange_failed"
        assert exc_info.value.details == error_body
        discord_client.get_current_user.assert_not_awaited()

    async def test_token_exchange_non_json_error(self, oauth_settings, discord_client):
        discord_client.exchange_code.return_value = DiscordResponse(
            status=502, text="Bad Gateway"
        )

        with pytest.raises(OAuthException) as exc_info:
            await exchange_authorization_code(oauth_settings, discord_client, "code")

        assert exc_info.value.error == "token_exchange_failed"
        assert exc_info.value.details == "Bad Gateway"

    async def test_token_response_without_access_token(
        self, oauth_settings, discord_client
    ):
        discord_client.exchange_code.return_value = json_response(200, {"scope": ""})

        with pytest.raises(OAuthException) as exc_info:
            await exchange_authorization_code(oauth_settings, discord_client, "code")

        assert exc_info.value.error == "token_exchange_failed"

    async def test_user_fetch_failed(self, oauth_settings, discord_client):
        error_body = {"message": "401: Unauthorized", "code": 0}
        discord_client.get_current_user.return_value = json_response(401, error_body)

        with pytest.raises(OAuthException) as exc_info:
            await exchange_authorization_code(oauth_settings, discord_client, "code")

        assert exc_info.value.error == "user_fetch_failed"
        assert exc_info.value.details == error_body
