"""SPACE-ODYSSEY relay server.

Main FastAPI application: the controller relay on ``/``, the event feed on
``/events``, and the game API under ``/api/game``.  The simulation engine
runs headless in its own tick thread and listens on the relay like any
other peer.
"""

import asyncio
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from odyssey import __version__
from relay.config import settings
from relay.routers import game_router, ws_router
from relay.routers.ws import EventBridge, manager


def _create_simulation_engine():
    """Create a SimulationEngine. Returns engine or None."""
    if not settings.simulation_enabled:
        return None

    from odyssey.comms.event_bus import EventBus
    from odyssey.simulation import SimulationEngine

    engine = SimulationEngine(EventBus())
    logger.info("Simulation engine created")
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("=" * 60)
    logger.info(f"  {settings.app_name} v{__version__} - INITIALIZING")
    logger.info("=" * 60)

    sim_engine = _create_simulation_engine()
    bridge = None
    app.state.simulation_engine = sim_engine

    if sim_engine is not None:
        manager.add_listener(sim_engine.handle_message)
        sim_engine.start()
        bridge = EventBridge(sim_engine.event_bus, asyncio.get_running_loop())
        bridge.start()
        logger.info("Simulation engine + event bridge started")
    else:
        logger.info("Simulation disabled, running as a plain relay")

    logger.info("=" * 60)
    logger.info(f"  {settings.app_name} ONLINE (ws://{settings.host}:{settings.port}/)")
    logger.info("=" * 60)

    yield

    if bridge is not None:
        logger.info("Stopping event bridge...")
        bridge.stop()
    if sim_engine is not None:
        manager.remove_listener(sim_engine.handle_message)
        logger.info("Stopping simulation engine...")
        sim_engine.stop()
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Arcade survival shooter simulation and controller relay",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(ws_router)
app.include_router(game_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": __version__,
        "system": settings.app_name,
        "peers": len(manager.peers),
    }


def main():
    uvicorn.run("relay.main:app", host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
