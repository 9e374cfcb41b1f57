from aiohttp import web

from social.graze.relay.app.config import HealthGaugeAppKey
from social.graze.relay.model.pairing import now_ms


async def handle_health(request: web.Request):
    return web.json_response({"ok": True, "ts": now_ms()})


async def handle_internal_ready(request: web.Request):
    health_gauge = request.app[HealthGaugeAppKey]
    if await health_gauge.is_healthy():
        return web.Response(status=200)
    return web.Response(status=503)


async def handle_internal_alive(request: web.Request):
    return web.Response(status=200)
