"""Game API — state, boss bar, upgrade offer, reset."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from odyssey.simulation.engine import (
    PURCHASE_INSUFFICIENT_SCRAP,
    PURCHASE_NO_OFFER,
    PURCHASE_NOT_OFFERED,
)

router = APIRouter(prefix="/api/game", tags=["game"])


def _get_engine(request: Request):
    """Retrieve the SimulationEngine from app state."""
    sim = getattr(request.app.state, "simulation_engine", None)
    if sim is not None:
        return sim
    raise HTTPException(503, "Simulation engine not available")


def _offer_dicts(engine) -> list[dict] | None:
    offer = engine.upgrade_offer
    return [u.to_dict() for u in offer] if offer is not None else None


@router.get("/state")
async def get_game_state(request: Request):
    """Full simulation snapshot."""
    engine = _get_engine(request)
    return engine.snapshot()


@router.get("/boss")
async def get_boss(request: Request):
    """Boss health bar data, or ``{"boss": null}`` outside boss fights."""
    engine = _get_engine(request)
    return {"boss": engine.get_boss_display()}


@router.get("/upgrades")
async def get_upgrades(request: Request):
    """Current offer (null while a wave is running), wallet and modifiers."""
    engine = _get_engine(request)
    return {
        "offer": _offer_dicts(engine),
        **engine.upgrades.to_dict(),
    }


@router.post("/upgrades/skip")
async def skip_upgrade(request: Request):
    """Decline the offer and start the next wave."""
    engine = _get_engine(request)
    if engine.upgrade_offer is None:
        raise HTTPException(409, "No upgrade offer pending")
    engine.skip_upgrade()
    return {"status": "skipped", "wave": engine.waves.wave_number}


@router.post("/upgrades/{upgrade_id}")
async def purchase_upgrade(upgrade_id: str, request: Request):
    """Buy one of the offered upgrades and start the next wave."""
    engine = _get_engine(request)
    outcome = engine.purchase_offered(upgrade_id)
    if outcome == PURCHASE_NO_OFFER:
        raise HTTPException(409, "No upgrade offer pending")
    if outcome == PURCHASE_NOT_OFFERED:
        raise HTTPException(404, f"Upgrade not offered: {upgrade_id}")
    if outcome == PURCHASE_INSUFFICIENT_SCRAP:
        raise HTTPException(402, f"Not enough scrap for {upgrade_id}")
    return {
        "status": outcome,
        "upgrade_id": upgrade_id,
        "scrap": engine.upgrades.scrap,
        "wave": engine.waves.wave_number,
    }


@router.post("/reset")
async def reset_game(request: Request):
    """Abandon the run and start again at wave 1."""
    engine = _get_engine(request)
    engine.reset()
    return {"status": "reset", "wave": engine.waves.wave_number}
