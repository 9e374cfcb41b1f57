from dataclasses import dataclass
import json
import logging
from time import time
from typing import Any, Dict, Optional

from aiohttp import ClientSession, hdrs, web

from social.graze.relay.app.metrics import MetricsClient

logger = logging.getLogger(__name__)


@dataclass
class DiscordResponse:
    """An upstream response, fully read so it can be inspected and relayed."""

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text)

    def json_or_text(self) -> Any:
        """Decoded JSON body, or the raw text when the body is not JSON."""
        try:
            return json.loads(self.text)
        except ValueError:
            return self.text

    def to_web_response(self) -> web.Response:
        return web.Response(
            status=self.status, text=self.text, content_type="application/json"
        )


class DiscordClient:
    """
    Thin client for the Discord HTTP API.

    Every call returns a DiscordResponse regardless of status; callers decide what a
    failure means. Network errors propagate as aiohttp exceptions.
    """

    def __init__(
        self,
        http_session: ClientSession,
        api_base: str,
        metrics_client: MetricsClient,
    ) -> None:
        self.http_session = http_session
        self.api_base = api_base.rstrip("/")
        self.metrics_client = metrics_client

    async def request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs: Any,
    ) -> DiscordResponse:
        headers: Dict[str, str] = kwargs.pop("headers", {})
        if access_token is not None:
            headers[hdrs.AUTHORIZATION] = f"Bearer {access_token}"

        url = f"{self.api_base}{path}"
        start_time = time()
        status = 0

        try:
            async with self.http_session.request(
                method, url, headers=headers, **kwargs
            ) as resp:
                status = resp.status
                return DiscordResponse(status=resp.status, text=await resp.text())
        finally:
            self.metrics_client.timer(
                "relay.discord.request.time",
                time() - start_time,
                tag_dict={"path": path, "method": method.lower(), "status": status},
            )

    async def exchange_code(
        self, client_id: str, client_secret: str, code: str, redirect_uri: str
    ) -> DiscordResponse:
        form = {
            "client_id": client_id,
            "client_secret": client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        return await self.request(
            hdrs.METH_POST,
            "/oauth2/token",
            data=form,
            headers={hdrs.CONTENT_TYPE: "application/x-www-form-urlencoded"},
        )

    async def get_current_user(self, access_token: str) -> DiscordResponse:
        return await self.request(hdrs.METH_GET, "/users/@me", access_token=access_token)

    async def get_current_user_guilds(self, access_token: str) -> DiscordResponse:
        return await self.request(
            hdrs.METH_GET, "/users/@me/guilds", access_token=access_token
        )
