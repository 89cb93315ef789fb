"""Epoch endpoint handlers."""

from __future__ import annotations

from aiohttp import web

from .common import epoch_param, get_engine, json_response


async def handle_current(request: web.Request) -> web.Response:
    """
    Handle current epoch request.

    Response: JSON object with fields:
        - currentEpoch (string): The live epoch, clamped to the last epoch.
        - elapsedEpochs (string): Number of epochs whose end has passed.
        - lastFinalizedEpoch (string | null): Latest snapshotted epoch.
        - secondsUntilNextEpoch (number): Time to the next boundary.
        - programEnded (boolean): Whether the last epoch has closed.

    Status Codes:
        200 OK: Epoch status returned.
        503 Service Unavailable: Engine not initialized.
    """
    engine = get_engine(request)
    last = engine.last_finalized_epoch()
    return json_response(
        {
            "currentEpoch": str(engine.get_current_epoch()),
            "elapsedEpochs": str(engine.elapsed_epochs()),
            "lastFinalizedEpoch": None if last is None else str(last),
            "secondsUntilNextEpoch": engine.clock.seconds_until_next_epoch(),
            "programEnded": engine.clock.has_ended(),
        }
    )


async def handle_record(request: web.Request) -> web.Response:
    """
    Handle epoch record request.

    Response: JSON object with fields:
        - epoch (string)
        - totalEffectiveStake (string): Frozen total, or the running total.
        - rewardAllocated (string): Zero until finalized.
        - finalized (boolean)

    Status Codes:
        200 OK: Record returned.
        400 Bad Request: Invalid epoch.
        503 Service Unavailable: Engine not initialized.
    """
    epoch = epoch_param(request)
    record = get_engine(request).epochs(epoch)
    return json_response({"epoch": str(epoch), **record.to_wire()})


async def handle_snapshot(request: web.Request) -> web.Response:
    """
    Handle epoch snapshot request.

    Any caller may finalize an ended epoch; a keeper normally does.

    Response: The frozen epoch record (see `handle_record`).

    Status Codes:
        200 OK: Epoch finalized.
        400 Bad Request: Invalid epoch.
        409 Conflict: Already finalized, not ended, or out of order.
        503 Service Unavailable: Engine not initialized.
    """
    epoch = epoch_param(request)
    record = get_engine(request).snapshot_epoch(epoch)
    return json_response({"epoch": str(epoch), **record.to_wire()})
