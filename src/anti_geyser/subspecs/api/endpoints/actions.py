"""
Mutation endpoint handlers: stake, withdraw and claim.

The caller identity travels in the request body. Authenticating it is the
wallet layer's job; the engine trusts the identity it is given.
"""

from __future__ import annotations

from typing import Any

from aiohttp import web
from pydantic import field_validator

from anti_geyser.types import StrictBaseModel, Uint256

from .common import get_engine, json_response


class ClaimRequest(StrictBaseModel):
    """Body of a claim request."""

    participant: str


class AmountRequest(ClaimRequest):
    """Body of a stake or withdraw request. Amounts are base units."""

    amount: Uint256

    @field_validator("amount", mode="before")
    @classmethod
    def parse_decimal_string(cls, v: Any) -> Any:
        """Accept base units as a decimal string, the wire format of amounts."""
        if isinstance(v, str):
            try:
                return Uint256.parse(v)
            except OverflowError as e:
                raise ValueError(str(e)) from e
        return v


async def handle_stake(request: web.Request) -> web.Response:
    """
    Handle stake request.

    Request: JSON object `{"participant": str, "amount": str}`.

    Response: The updated position (see the position endpoint).

    Status Codes:
        200 OK: Stake applied.
        400 Bad Request: Malformed body or zero amount.
        409 Conflict: Program inactive or insufficient balance.
    """
    body = AmountRequest.model_validate(await request.json())
    view = get_engine(request).stake(body.participant, body.amount)
    return json_response(view.to_wire())


async def handle_withdraw(request: web.Request) -> web.Response:
    """
    Handle withdraw request.

    Request: JSON object `{"participant": str, "amount": str}`.

    Response: The updated position.

    Status Codes:
        200 OK: Withdrawal applied.
        400 Bad Request: Malformed body or zero amount.
        409 Conflict: Insufficient stake.
    """
    body = AmountRequest.model_validate(await request.json())
    view = get_engine(request).withdraw(body.participant, body.amount)
    return json_response(view.to_wire())


async def handle_claim(request: web.Request) -> web.Response:
    """
    Handle claim request.

    Request: JSON object `{"participant": str}`.

    Response: JSON object `{"participant": str, "claimed": str}`.

    Status Codes:
        200 OK: Rewards paid.
        400 Bad Request: Malformed body.
        409 Conflict: Program paused, unfinalized epoch, or nothing to claim.
    """
    body = ClaimRequest.model_validate(await request.json())
    claimed = get_engine(request).claim_rewards(body.participant)
    return json_response({"participant": body.participant, "claimed": str(claimed)})
