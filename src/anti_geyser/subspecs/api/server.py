"""
API server exposing the staking engine over HTTP.

Provides HTTP endpoints for:
- /v0/health - Health check endpoint
- /metrics - Prometheus metrics endpoint
- /v0/config, /v0/epochs/... - Program and epoch queries
- /v0/positions/... - Position, pending reward and effective stake queries
- /v0/stake, /v0/withdraw, /v0/claim - Participant operations
- /v0/epochs/{epoch}/snapshot - Epoch finalization

Amounts travel as decimal strings of base units.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiohttp import web
from pydantic import ValidationError

from anti_geyser.types.exceptions import (
    InvalidAmount,
    StakingError,
)

from .endpoints.common import ENGINE_KEY, json_response
from .routes import GET_ROUTES, POST_ROUTES

if TYPE_CHECKING:
    from anti_geyser.subspecs.engine import StakingEngine

logger = logging.getLogger(__name__)

BAD_INPUT_ERRORS: tuple[type[StakingError], ...] = (InvalidAmount,)
"""Errors caused by the request itself rather than by engine state."""


def _no_engine() -> StakingEngine | None:
    """Default engine getter that returns None."""
    return None


def error_status(error: StakingError) -> int:
    """HTTP status for a rejected operation."""
    if isinstance(error, BAD_INPUT_ERRORS):
        return 400
    return 409


@web.middleware
async def staking_errors(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """
    Render engine and validation errors as JSON.

    Body: `{"error": <error class>, "message": <description>}`.
    """
    try:
        return await handler(request)
    except StakingError as e:
        return json_response(
            {"error": type(e).__name__, "message": e.message}, status=error_status(e)
        )
    except ValidationError as e:
        return json_response(
            {"error": "ValidationError", "message": str(e)},
            status=400,
        )
    except json.JSONDecodeError as e:
        return json_response({"error": "InvalidJSON", "message": str(e)}, status=400)


@dataclass(frozen=True, slots=True)
class ApiServerConfig:
    """Configuration for the API server."""

    host: str = "0.0.0.0"
    """Host address to bind to."""

    port: int = 8545
    """Port to listen on."""

    enabled: bool = True
    """Whether the API server is enabled."""


@dataclass(slots=True)
class ApiServer:
    """
    HTTP API server for a staking engine.

    Uses aiohttp to handle HTTP protocol details efficiently.
    """

    config: ApiServerConfig
    """Server configuration."""

    engine_getter: Callable[[], StakingEngine | None] = _no_engine
    """Callable that returns the current engine."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    @property
    def engine(self) -> StakingEngine | None:
        """Get the current engine."""
        return self.engine_getter()

    def build_app(self) -> web.Application:
        """Create the aiohttp application with every route attached."""
        app = web.Application(middlewares=[staking_errors])
        app[ENGINE_KEY] = self.engine_getter
        app.add_routes([web.get(path, handler) for path, handler in GET_ROUTES.items()])
        app.add_routes([web.post(path, handler) for path, handler in POST_ROUTES.items()])
        return app

    async def start(self) -> None:
        """Start the API server in the background."""
        if not self.config.enabled:
            logger.info("API server is disabled")
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("API server listening on %s:%d", self.config.host, self.config.port)

    async def run(self) -> None:
        """
        Run the API server until shutdown.

        This method blocks until stop() is called.
        """
        await self.start()

        # Keep running until stopped
        while self._runner is not None:
            await asyncio.sleep(1)

    def stop(self) -> None:
        """Request graceful shutdown."""
        if self._runner is not None:
            asyncio.create_task(self._async_stop())

    async def _async_stop(self) -> None:
        """Gracefully stop the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("API server stopped")
