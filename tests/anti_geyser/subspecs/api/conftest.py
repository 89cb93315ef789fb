"""Shared fixtures for API server tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import pytest

from anti_geyser.subspecs.api import ApiServer, ApiServerConfig
from anti_geyser.subspecs.engine import StakingEngine

Serve = Callable[[int], AbstractAsyncContextManager[str]]


@pytest.fixture
def serve(engine: StakingEngine) -> Serve:
    """Run an API server for the test engine on a local port, yielding its base URL."""

    @asynccontextmanager
    async def _serve(port: int) -> AsyncIterator[str]:
        server = ApiServer(
            config=ApiServerConfig(host="127.0.0.1", port=port),
            engine_getter=lambda: engine,
        )
        await server.start()
        try:
            yield f"http://127.0.0.1:{port}"
        finally:
            server.stop()
            await asyncio.sleep(0.1)

    return _serve
