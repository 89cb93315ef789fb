"""Position endpoint handlers."""

from __future__ import annotations

from aiohttp import web

from .common import epoch_param, get_engine, json_response


async def handle_position(request: web.Request) -> web.Response:
    """
    Handle position request.

    Response: JSON object with fields:
        - amount (string)
        - joinEpoch (string)
        - lastClaimEpoch (string | null): Null until the first claim.
        - tenureEpochs (string)
        - churnCount (string)

    Status Codes:
        200 OK: Position returned.
        404 Not Found: The participant never staked.
        503 Service Unavailable: Engine not initialized.
    """
    participant = request.match_info["participant"]
    view = get_engine(request).get_position(participant)
    if view is None:
        raise web.HTTPNotFound(reason=f"No position for {participant}")
    return json_response(view.to_wire())


async def handle_pending(request: web.Request) -> web.Response:
    """
    Handle pending rewards request.

    Response: JSON object with fields:
        - participant (string)
        - pendingRewards (string): Sum over finalized, unclaimed epochs.
        - shares (array): Per-epoch breakdown with `epoch`, `effectiveStake`,
          `totalEffectiveStake` and `reward`.

    Status Codes:
        200 OK: Pending rewards returned (zero for unknown participants).
        503 Service Unavailable: Engine not initialized.
    """
    participant = request.match_info["participant"]
    accrual = get_engine(request).pending_breakdown(participant)
    return json_response(
        {
            "participant": participant,
            "pendingRewards": str(accrual.amount),
            "shares": [
                {
                    "epoch": str(share.epoch),
                    "effectiveStake": str(share.effective_stake),
                    "totalEffectiveStake": str(share.total_effective_stake),
                    "reward": str(share.reward),
                }
                for share in accrual.shares
            ],
        }
    )


async def handle_effective_stake(request: web.Request) -> web.Response:
    """
    Handle effective stake request.

    Response: JSON object with fields:
        - participant (string)
        - epoch (string)
        - effectiveStake (string): Computed from the state in force then.

    Status Codes:
        200 OK: Effective stake returned.
        400 Bad Request: Invalid epoch.
        503 Service Unavailable: Engine not initialized.
    """
    participant = request.match_info["participant"]
    epoch = epoch_param(request)
    stake = get_engine(request).effective_stake(participant, epoch)
    return json_response(
        {"participant": participant, "epoch": str(epoch), "effectiveStake": str(stake)}
    )
