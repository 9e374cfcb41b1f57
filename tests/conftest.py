"""
Shared test configuration and fixtures for relay tests.

Provides a fake Discord API served by aiohttp's TestServer, settings pointing at it,
and a test client for the relay application.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from social.graze.relay.app.config import Settings
from social.graze.relay.app.server import start_web_server

DISCORD_CLIENT_ID = "relay-client-id"
DISCORD_CLIENT_SECRET = "relay-client-secret"
DISCORD_REDIRECT_URI = "https://relay.example.com/auth/callback"

DISCORD_TOKEN = "discord-access-token"
DISCORD_USER = {
    "id": "80351110224678912",
    "username": "nelly",
    "global_name": "Nelly",
    "avatar": "8342729096ea3675442027381ff50dfe",
    "email": "nelly@example.com",
    "discriminator": "0",
    "verified": True,
}
DISCORD_GUILDS = [
    {"id": "197038439483310086", "name": "Discord Testers", "owner": False},
    {"id": "613425648685547541", "name": "Discord Developers", "owner": True},
]


class FakeDiscord:
    """
    In-process stand-in for the Discord HTTP API.

    Tokens in ``users`` are accepted by the ``/users/@me`` endpoints. Codes in ``codes``
    are accepted by ``/oauth2/token`` and map to the token response to return.
    Every request is recorded in ``requests`` as ``(method, path, headers, form)``.
    When ``me_gate`` is set, ``/users/@me`` sets ``me_waiting`` and holds the response
    until the gate opens.
    """

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {DISCORD_TOKEN: DISCORD_USER}
        self.guilds: List[Dict[str, Any]] = DISCORD_GUILDS
        self.codes: Dict[str, Dict[str, Any]] = {
            "good-code": {
                "access_token": DISCORD_TOKEN,
                "token_type": "Bearer",
                "expires_in": 604800,
                "refresh_token": "discord-refresh-token",
                "scope": "identify email guilds",
            }
        }
        self.requests: List[Tuple[str, str, Dict[str, str], Dict[str, str]]] = []
        self.me_gate: Optional[asyncio.Event] = None
        self.me_waiting = asyncio.Event()

        self.app = web.Application()
        self.app.add_routes(
            [
                web.post("/api/oauth2/token", self.handle_token),
                web.get("/api/users/@me", self.handle_me),
                web.get("/api/users/@me/guilds", self.handle_guilds),
            ]
        )

    def _user_for(self, request: web.Request):
        authorization = request.headers.get("Authorization", "")
        return self.users.get(authorization.removeprefix("Bearer "))

    async def handle_token(self, request: web.Request) -> web.Response:
        form = dict(await request.post())
        self.requests.append(
            (request.method, request.path, dict(request.headers), form)
        )
        if (
            form.get("client_id") != DISCORD_CLIENT_ID
            or form.get("client_secret") != DISCORD_CLIENT_SECRET
        ):
            return web.json_response(status=401, data={"error": "invalid_client"})
        token_response = self.codes.get(form.get("code", ""))
        if token_response is None:
            return web.json_response(
                status=400,
                data={
                    "error": "invalid_grant",
                    "error_description": 'Invalid "code" in request.',
                },
            )
        return web.json_response(token_response)

    async def handle_me(self, request: web.Request) -> web.Response:
        self.requests.append((request.method, request.path, dict(request.headers), {}))
        if self.me_gate is not None:
            self.me_waiting.set()
            await self.me_gate.wait()
        user = self._user_for(request)
        if user is None:
            return web.json_response(
                status=401, data={"message": "401: Unauthorized", "code": 0}
            )
        return web.json_response(user)

    async def handle_guilds(self, request: web.Request) -> web.Response:
        self.requests.append((request.method, request.path, dict(request.headers), {}))
        if self._user_for(request) is None:
            return web.json_response(
                status=401, data={"message": "401: Unauthorized", "code": 0}
            )
        return web.json_response(self.guilds)


@pytest.fixture
def fake_discord():
    return FakeDiscord()


@pytest_asyncio.fixture
async def discord_server(fake_discord):
    """Serve the fake Discord API on a local port."""
    server = TestServer(fake_discord.app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def settings(discord_server):
    return Settings(
        discord_client_id=DISCORD_CLIENT_ID,
        discord_client_secret=DISCORD_CLIENT_SECRET,
        discord_redirect_uri=DISCORD_REDIRECT_URI,
        discord_api_base=str(discord_server.make_url("/api")),
        metrics_backend="none",
    )


@pytest_asyncio.fixture
async def relay_app(settings):
    return await start_web_server(settings)


@pytest_asyncio.fixture
async def client(relay_app):
    """Test client for the relay, with background tasks running."""
    async with TestClient(TestServer(relay_app)) as test_client:
        yield test_client
