"""Health endpoint handler."""

from __future__ import annotations

from typing import Final

from aiohttp import web

from .common import ENGINE_KEY, json_response

STATUS_HEALTHY: Final = "healthy"
"""Status reported whenever the server answers."""

SERVICE_NAME: Final = "anti-geyser-api"


def program_state(request: web.Request) -> str:
    """One of `active`, `paused`, `ended`, or `unavailable` before an engine is attached."""
    engine_getter = request.app.get(ENGINE_KEY)
    engine = engine_getter() if engine_getter else None
    if engine is None:
        return "unavailable"
    if engine.clock.has_ended():
        return "ended"
    return "active" if engine.config.active else "paused"


async def handle(request: web.Request) -> web.Response:
    """
    Handle health check request.

    Liveness does not depend on the engine: the server is healthy as long as
    it answers. The program state is reported alongside for dashboards.

    Response: `{"status": "healthy", "service": "anti-geyser-api", "program": <state>}`.
    """
    return json_response(
        {"status": STATUS_HEALTHY, "service": SERVICE_NAME, "program": program_state(request)}
    )
