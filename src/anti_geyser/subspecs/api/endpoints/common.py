"""Request helpers shared by the endpoint handlers."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from aiohttp import web

from anti_geyser.subspecs.containers import Epoch

if TYPE_CHECKING:
    from anti_geyser.subspecs.engine import StakingEngine

ENGINE_KEY: web.AppKey[Callable[[], StakingEngine | None]] = web.AppKey("engine_getter")
"""Application key under which the server stores its engine getter."""


def get_engine(request: web.Request) -> StakingEngine:
    """
    Resolve the engine behind a request.

    Raises:
        HTTPServiceUnavailable: If no engine is attached yet.
    """
    engine_getter = request.app.get(ENGINE_KEY)
    engine = engine_getter() if engine_getter else None
    if engine is None:
        raise web.HTTPServiceUnavailable(reason="Engine not initialized")
    return engine


def epoch_param(request: web.Request, name: str = "epoch") -> Epoch:
    """
    Parse an epoch index from the URL path.

    Raises:
        HTTPBadRequest: If the segment is not a non-negative integer.
    """
    raw = request.match_info[name]
    try:
        return Epoch.parse(raw)
    except (ValueError, OverflowError) as e:
        raise web.HTTPBadRequest(reason=f"Invalid epoch: {raw!r}") from e


def json_response(body: dict[str, Any], status: int = 200) -> web.Response:
    """Serialize a JSON body."""
    return web.Response(
        body=json.dumps(body),
        status=status,
        content_type="application/json",
    )
