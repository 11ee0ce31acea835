from fastapi import FastAPI

from shared.config.database import AsyncSessionLocal
from shared.config.settings import TRACKING_SIMULATION_ENABLED
from shared.observability import setup_observability

from .broadcaster import tracking_hub
from .router import router
from .simulator import TrackingSimulator

tracking_app = FastAPI(title="Tracking Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(tracking_app, "tracking_service")

tracking_app.include_router(router)

# Owned here, started and stopped by the root app's lifecycle
simulator = TrackingSimulator(AsyncSessionLocal, tracking_hub)


async def start_tracking_simulation() -> None:
    if TRACKING_SIMULATION_ENABLED:
        simulator.start()


async def stop_tracking_simulation() -> None:
    await simulator.stop()
