"""
HTTP client for a remote staking engine.

Wraps the API server's routes for dashboards, scripts and remote keepers.
Amounts come back as `Uint256` base units; errors the server rejected an
operation with are re-raised as `ApiError` carrying the engine error name.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from anti_geyser.subspecs.containers import Epoch, EpochRecord, PositionView
from anti_geyser.types import Uint64, Uint256

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
"""HTTP request timeout in seconds."""


class ApiError(Exception):
    """
    Error returned by, or while reaching, a staking API server.

    Attributes:
        status: HTTP status code, 0 for network errors.
        error: Engine error class name (e.g. "NothingToClaim"), if any.
        message: Human-readable error description.
    """

    def __init__(self, status: int, error: str | None, message: str) -> None:
        self.status = status
        self.error = error
        self.message = message
        super().__init__(f"{error or 'HTTP ' + str(status)}: {message}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.status}, {self.error!r}, {self.message!r})"


def _epoch(value: str | None) -> Epoch | None:
    return None if value is None else Epoch.parse(value)


class ApiClient:
    """
    Async client for the staking API.

    Use as an async context manager so the underlying connection pool is
    closed:

        async with ApiClient("http://localhost:8545") as client:
            pending = await client.pending_rewards("0xabc")
    """

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._client = httpx.AsyncClient(base_url=url.rstrip("/"), timeout=timeout)

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the connection pool."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.RequestError as exc:
            raise ApiError(
                0, None, f"Network error while connecting to {exc.request.url}: {exc}"
            ) from exc

        if response.is_success:
            return response.json()

        # Engine rejections carry a JSON body; anything else is plain HTTP.
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        raise ApiError(
            response.status_code,
            payload.get("error"),
            payload.get("message") or response.reason_phrase,
        )

    async def current_epoch(self) -> Epoch:
        """The server's current epoch."""
        data = await self._request("GET", "/v0/epochs/current")
        return Epoch.parse(data["currentEpoch"])

    async def epoch(self, epoch: int) -> EpochRecord:
        """The record of an epoch."""
        data = await self._request("GET", f"/v0/epochs/{int(epoch)}")
        return EpochRecord(
            total_effective_stake=Uint256.parse(data["totalEffectiveStake"]),
            reward_allocated=Uint256.parse(data["rewardAllocated"]),
            finalized=data["finalized"],
        )

    async def position(self, participant: str) -> PositionView | None:
        """A participant's position, `None` if they never staked."""
        try:
            data = await self._request("GET", f"/v0/positions/{participant}")
        except ApiError as e:
            if e.status == 404:
                return None
            raise
        return PositionView(
            amount=Uint256.parse(data["amount"]),
            join_epoch=Epoch.parse(data["joinEpoch"]),
            last_claim_epoch=_epoch(data["lastClaimEpoch"]),
            tenure_epochs=Uint64.parse(data["tenureEpochs"]),
            churn_count=Uint64.parse(data["churnCount"]),
        )

    async def pending_rewards(self, participant: str) -> Uint256:
        """Rewards a claim would pay right now."""
        data = await self._request("GET", f"/v0/positions/{participant}/pending")
        return Uint256.parse(data["pendingRewards"])

    async def stake(self, participant: str, amount: int) -> None:
        """Stake base units on behalf of a participant."""
        await self._request(
            "POST", "/v0/stake", {"participant": participant, "amount": str(int(amount))}
        )

    async def withdraw(self, participant: str, amount: int) -> None:
        """Withdraw base units on behalf of a participant."""
        await self._request(
            "POST", "/v0/withdraw", {"participant": participant, "amount": str(int(amount))}
        )

    async def claim(self, participant: str) -> Uint256:
        """Claim a participant's rewards, returning the amount paid."""
        data = await self._request("POST", "/v0/claim", {"participant": participant})
        return Uint256.parse(data["claimed"])

    async def snapshot(self, epoch: int) -> EpochRecord:
        """Finalize an ended epoch."""
        data = await self._request("POST", f"/v0/epochs/{int(epoch)}/snapshot")
        logger.info("Requested snapshot of epoch %d", int(epoch))
        return EpochRecord(
            total_effective_stake=Uint256.parse(data["totalEffectiveStake"]),
            reward_allocated=Uint256.parse(data["rewardAllocated"]),
            finalized=data["finalized"],
        )
