"""Tests for the game API router."""

from __future__ import annotations

import random

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from odyssey.comms.event_bus import EventBus
from odyssey.simulation.engine import SimulationEngine

pytestmark = pytest.mark.unit


@pytest.fixture
def app() -> FastAPI:
    """Test app with the game router and an engine that is not ticking."""
    from relay.routers.game import router

    test_app = FastAPI()
    test_app.include_router(router)
    test_app.state.simulation_engine = SimulationEngine(
        EventBus(), width=1280.0, height=720.0, rng=random.Random(11), publish_snapshots=False,
    )
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def engine(app: FastAPI) -> SimulationEngine:
    return app.state.simulation_engine


def open_offer(engine: SimulationEngine) -> None:
    wave = engine.waves.current_wave
    engine.waves.enemies_spawned = wave.enemy_count
    engine.waves.enemies_killed = wave.enemy_count
    engine.update()
    assert engine.upgrade_offer is not None


class TestNoEngine:
    def test_503_without_engine(self):
        from relay.routers.game import router

        bare = FastAPI()
        bare.include_router(router)
        resp = TestClient(bare).get("/api/game/state")
        assert resp.status_code == 503


class TestState:
    def test_state(self, client: TestClient) -> None:
        resp = client.get("/api/game/state")
        assert resp.status_code == 200
        data = resp.json()
        assert data["wave"]["wave"] == 1
        assert data["player"]["health"] == 100.0
        assert data["game_over"] is False

    def test_boss_absent(self, client: TestClient) -> None:
        assert client.get("/api/game/boss").json() == {"boss": None}

    def test_boss_present(self, client: TestClient, engine: SimulationEngine) -> None:
        engine.waves.wave_number = 5
        engine.waves.start_wave()
        wave = engine.waves.current_wave
        engine.waves.enemies_spawned = wave.enemy_count
        engine.waves.enemies_killed = wave.enemy_count
        engine.update()
        data = client.get("/api/game/boss").json()["boss"]
        assert data["name"] == "Hive Overseer"
        assert data["max_hp"] == 500
        assert data["phase_label"] == "Phase 1"

    def test_reset(self, client: TestClient, engine: SimulationEngine) -> None:
        engine.combat.score = 500
        engine.waves.next_wave()
        resp = client.post("/api/game/reset")
        assert resp.status_code == 200
        assert resp.json()["wave"] == 1
        assert engine.combat.score == 0


class TestUpgrades:
    def test_no_offer_during_wave(self, client: TestClient) -> None:
        data = client.get("/api/game/upgrades").json()
        assert data["offer"] is None
        assert data["scrap"] == 0
        assert data["modifiers"]["bullets_per_shot"] == 1

    def test_offer_listed(self, client: TestClient, engine: SimulationEngine) -> None:
        open_offer(engine)
        offer = client.get("/api/game/upgrades").json()["offer"]
        assert [u["id"] for u in offer] == [u.id for u in engine.upgrade_offer]

    def test_purchase(self, client: TestClient, engine: SimulationEngine) -> None:
        open_offer(engine)
        engine.upgrades.add_scrap(500)
        choice = engine.upgrade_offer[0]
        resp = client.post(f"/api/game/upgrades/{choice.id}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["upgrade_id"] == choice.id
        assert body["scrap"] == 500 - choice.cost
        assert body["wave"] == 2

    def test_purchase_insufficient_scrap(self, client: TestClient, engine: SimulationEngine) -> None:
        open_offer(engine)
        choice = engine.upgrade_offer[0]
        resp = client.post(f"/api/game/upgrades/{choice.id}")
        assert resp.status_code == 402
        assert engine.upgrade_offer is not None

    def test_purchase_not_offered(self, client: TestClient, engine: SimulationEngine) -> None:
        open_offer(engine)
        resp = client.post("/api/game/upgrades/warp_drive")
        assert resp.status_code == 404

    def test_purchase_without_offer(self, client: TestClient) -> None:
        resp = client.post("/api/game/upgrades/dual_cannons")
        assert resp.status_code == 409

    def test_skip(self, client: TestClient, engine: SimulationEngine) -> None:
        open_offer(engine)
        resp = client.post("/api/game/upgrades/skip")
        assert resp.status_code == 200
        assert resp.json() == {"status": "skipped", "wave": 2}

    def test_skip_without_offer(self, client: TestClient) -> None:
        assert client.post("/api/game/upgrades/skip").status_code == 409
