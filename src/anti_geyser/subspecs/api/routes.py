"""API route definitions."""

from collections.abc import Awaitable, Callable

from aiohttp import web

from .endpoints import actions, epochs, health, metrics, positions, program

Handler = Callable[[web.Request], Awaitable[web.Response]]

GET_ROUTES: dict[str, Handler] = {
    "/v0/health": health.handle,
    "/metrics": metrics.handle,
    "/v0/config": program.handle_config,
    "/v0/epochs/current": epochs.handle_current,
    "/v0/epochs/{epoch}": epochs.handle_record,
    "/v0/positions/{participant}": positions.handle_position,
    "/v0/positions/{participant}/pending": positions.handle_pending,
    "/v0/positions/{participant}/effective-stake/{epoch}": positions.handle_effective_stake,
}
"""Read-only routes mapped to their handlers."""

POST_ROUTES: dict[str, Handler] = {
    "/v0/stake": actions.handle_stake,
    "/v0/withdraw": actions.handle_withdraw,
    "/v0/claim": actions.handle_claim,
    "/v0/epochs/{epoch}/snapshot": epochs.handle_snapshot,
}
"""Mutating routes mapped to their handlers."""
