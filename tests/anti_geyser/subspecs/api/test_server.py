"""Tests for the API server endpoints."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from anti_geyser.subspecs.api import ApiServer, ApiServerConfig
from anti_geyser.subspecs.api.server import error_status
from anti_geyser.subspecs.engine import (
    InsufficientStake,
    InvalidAmount,
    NothingToClaim,
    StakingEngine,
)
from anti_geyser.types import to_wad
from tests.anti_geyser.subspecs.api.conftest import Serve

Goto = Callable[[int], None]


class TestApiServerConfiguration:
    """Tests for API server configuration behavior."""

    def test_default_config(self) -> None:
        """Default configuration uses port 8545 and binds to all interfaces."""
        config = ApiServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8545
        assert config.enabled is True

    def test_server_created_without_engine(self) -> None:
        """Server can be created before an engine is available."""
        server = ApiServer(config=ApiServerConfig())

        assert server.engine is None

    def test_engine_getter_provides_engine(self, engine: StakingEngine) -> None:
        """Engine getter callable provides access to the engine."""
        server = ApiServer(config=ApiServerConfig(), engine_getter=lambda: engine)

        assert server.engine is engine

    def test_disabled_server_does_not_listen(self) -> None:
        """A disabled server returns from start without binding."""

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(port=18540, enabled=False))
            await server.start()
            assert server._runner is None

        asyncio.run(run_test())


class TestErrorMapping:
    """Tests for engine error to HTTP status mapping."""

    def test_bad_input_is_400(self) -> None:
        """Request-caused errors map to 400."""
        assert error_status(InvalidAmount("stake", 0)) == 400

    def test_state_conflicts_are_409(self) -> None:
        """State-caused errors map to 409."""
        assert error_status(NothingToClaim("alice")) == 409
        assert error_status(InsufficientStake("alice", 2, 1)) == 409


class TestHealthAndMetrics:
    """Tests for the service endpoints."""

    def test_health_and_metrics(self, serve: Serve) -> None:
        """Health reports the program state and metrics return Prometheus text."""

        async def run_test() -> None:
            async with serve(18541) as url, httpx.AsyncClient(base_url=url) as client:
                response = await client.get("/v0/health")
                assert response.status_code == 200
                assert response.json() == {
                    "status": "healthy",
                    "service": "anti-geyser-api",
                    "program": "active",
                }

                response = await client.get("/metrics")
                assert response.status_code == 200
                assert response.headers["content-type"].startswith("text/plain")
                assert "anti_geyser_current_epoch" in response.text

        asyncio.run(run_test())

    def test_503_without_engine(self) -> None:
        """Engine endpoints return 503 before an engine is attached."""

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(host="127.0.0.1", port=18542))
            await server.start()
            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:18542/v0/config")
                    assert response.status_code == 503

                    response = await client.get("http://127.0.0.1:18542/v0/health")
                    assert response.status_code == 200
                    assert response.json()["program"] == "unavailable"
            finally:
                server.stop()
                await asyncio.sleep(0.1)

        asyncio.run(run_test())


class TestQueries:
    """Tests for the read-only engine endpoints."""

    def test_config_and_epochs(self, serve: Serve, engine: StakingEngine, goto: Goto) -> None:
        """Program parameters and epoch status come back as camelCase JSON."""
        engine.stake("alice", to_wad("1000"))
        goto(2)

        async def run_test() -> None:
            async with serve(18543) as url, httpx.AsyncClient(base_url=url) as client:
                config = (await client.get("/v0/config")).json()
                assert config["totalEpochs"] == "10"
                assert config["rewardPerEpoch"] == str(to_wad("1000"))
                assert config["active"] is True

                current = (await client.get("/v0/epochs/current")).json()
                assert current["currentEpoch"] == "2"
                assert current["elapsedEpochs"] == "2"
                assert current["lastFinalizedEpoch"] is None
                assert current["secondsUntilNextEpoch"] == 0.0
                assert current["programEnded"] is False

                record = (await client.get("/v0/epochs/1")).json()
                assert record == {
                    "epoch": "1",
                    "totalEffectiveStake": str(to_wad("1020")),
                    "rewardAllocated": "0",
                    "finalized": False,
                }

                response = await client.get("/v0/epochs/abc")
                assert response.status_code == 400

        asyncio.run(run_test())

    def test_positions(self, serve: Serve, engine: StakingEngine, goto: Goto) -> None:
        """Position, pending and effective-stake queries."""
        engine.stake("alice", to_wad("1000"))
        goto(2)
        engine.snapshot_epoch(0)

        async def run_test() -> None:
            async with serve(18544) as url, httpx.AsyncClient(base_url=url) as client:
                position = (await client.get("/v0/positions/alice")).json()
                assert position == {
                    "amount": str(to_wad("1000")),
                    "joinEpoch": "0",
                    "lastClaimEpoch": None,
                    "tenureEpochs": "2",
                    "churnCount": "0",
                }

                response = await client.get("/v0/positions/nobody")
                assert response.status_code == 404

                pending = (await client.get("/v0/positions/alice/pending")).json()
                assert pending["pendingRewards"] == str(to_wad("1000"))
                assert [share["epoch"] for share in pending["shares"]] == ["0"]

                stranger = (await client.get("/v0/positions/nobody/pending")).json()
                assert stranger["pendingRewards"] == "0"

                stake = (await client.get("/v0/positions/alice/effective-stake/5")).json()
                assert stake["effectiveStake"] == str(to_wad("1100"))

        asyncio.run(run_test())


class TestOperations:
    """Tests for the mutating endpoints."""

    def test_stake_withdraw_claim(self, serve: Serve, engine: StakingEngine, goto: Goto) -> None:
        """Operations apply to the engine and return the updated state."""

        async def run_test() -> None:
            async with serve(18545) as url, httpx.AsyncClient(base_url=url) as client:
                response = await client.post(
                    "/v0/stake", json={"participant": "alice", "amount": str(to_wad("1000"))}
                )
                assert response.status_code == 200
                assert response.json()["amount"] == str(to_wad("1000"))

                response = await client.post(
                    "/v0/withdraw", json={"participant": "alice", "amount": str(to_wad("400"))}
                )
                assert response.status_code == 200
                assert response.json()["churnCount"] == "1"

                goto(1)
                response = await client.post("/v0/epochs/0/snapshot")
                assert response.status_code == 200
                assert response.json()["finalized"] is True

                response = await client.post("/v0/claim", json={"participant": "alice"})
                assert response.status_code == 200
                assert response.json() == {
                    "participant": "alice",
                    "claimed": str(to_wad("1000")),
                }

        asyncio.run(run_test())
        assert engine.reward_token.balance_of("alice") == to_wad("1000")

    def test_rejections(self, serve: Serve, engine: StakingEngine) -> None:
        """Engine rejections come back as JSON errors with 400 or 409."""
        engine.stake("alice", to_wad("10"))

        async def run_test() -> None:
            async with serve(18546) as url, httpx.AsyncClient(base_url=url) as client:
                response = await client.post(
                    "/v0/stake", json={"participant": "alice", "amount": "0"}
                )
                assert response.status_code == 400
                assert response.json()["error"] == "InvalidAmount"

                response = await client.post(
                    "/v0/withdraw", json={"participant": "alice", "amount": str(to_wad("11"))}
                )
                assert response.status_code == 409
                assert response.json()["error"] == "InsufficientStake"

                response = await client.post("/v0/claim", json={"participant": "alice"})
                assert response.status_code == 409
                assert response.json()["error"] == "NothingToClaim"

                response = await client.post("/v0/epochs/0/snapshot")
                assert response.status_code == 409
                assert response.json()["error"] == "EpochNotEnded"

        asyncio.run(run_test())

    def test_malformed_requests(self, serve: Serve) -> None:
        """Invalid bodies are rejected with 400 before reaching the engine."""

        async def run_test() -> None:
            async with serve(18547) as url, httpx.AsyncClient(base_url=url) as client:
                for body in (
                    {"participant": "alice", "amount": "1.5"},
                    {"participant": "alice", "amount": "-1"},
                    {"participant": "alice"},
                    {"participant": "alice", "amount": "1", "extra": True},
                ):
                    response = await client.post("/v0/stake", json=body)
                    assert response.status_code == 400
                    assert response.json()["error"] == "ValidationError"

                response = await client.post(
                    "/v0/stake",
                    content=b"{not json",
                    headers={"content-type": "application/json"},
                )
                assert response.status_code == 400
                assert response.json()["error"] == "InvalidJSON"

        asyncio.run(run_test())
