"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from busai.api import alerts, diagnostics, positions, vehicles, ws
from busai.config import settings
from busai.core.anomaly_engine import AnomalyEngine
from busai.core.broadcaster import Broadcaster
from busai.core.scheduler import create_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    broadcaster = Broadcaster()
    await broadcaster.connect()

    engine = AnomalyEngine.from_settings(settings, publisher=broadcaster)
    scheduler = create_scheduler(engine)

    # Wire up API modules
    positions.engine = engine
    alerts.engine = engine
    vehicles.engine = engine
    diagnostics.engine = engine
    diagnostics.scheduler = scheduler
    ws.broadcaster = broadcaster
    ws.engine = engine

    scheduler.start()
    logger.info("BusAI monitor started - anomaly tick every %ds", settings.tick_period_seconds)

    yield

    scheduler.stop()
    await scheduler.wait_idle()
    await broadcaster.close()
    logger.info("BusAI monitor shut down")


app = FastAPI(
    title="BusAI Fleet Anomaly Monitor",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(positions.router)
app.include_router(alerts.router)
app.include_router(vehicles.router)
app.include_router(diagnostics.router)
app.include_router(ws.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
