"""Program configuration endpoint handler."""

from __future__ import annotations

from aiohttp import web

from .common import get_engine, json_response


async def handle_config(request: web.Request) -> web.Response:
    """
    Handle program configuration request.

    Response: JSON object with the program parameters under their camelCase
    names (`epochLength`, `rewardPerEpoch`, `halfLife`, `alpha`, `tMax`,
    `startTime`, `totalEpochs`, `active`, ...). Integers are decimal strings.

    Status Codes:
        200 OK: Configuration returned.
        503 Service Unavailable: Engine not initialized.
    """
    return json_response(get_engine(request).config.to_wire())
