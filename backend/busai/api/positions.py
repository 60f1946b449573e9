"""Ingestion endpoint: normalized position records from the feed collaborator."""

import logging
from typing import Any

from fastapi import APIRouter, Body
from pydantic import ValidationError

from busai.schemas.position import PositionUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/positions", tags=["positions"])

# Will be set by main.py
engine = None


@router.post("")
async def ingest_positions(payload: Any = Body(...)):
    """Accept a list of position records (or {"vehicles": [...]})."""
    if engine is None:
        return {"error": "Engine not initialized"}

    if isinstance(payload, dict):
        items = payload.get("vehicles", [])
    elif isinstance(payload, list):
        items = payload
    else:
        items = []

    accepted = dropped = 0
    for item in items:
        try:
            update = PositionUpdate.model_validate(item)
        except ValidationError as e:
            logger.debug("Skipping malformed position record: %s", e)
            dropped += 1
            continue
        if engine.ingest(update):
            accepted += 1
        else:
            dropped += 1

    return {"accepted": accepted, "dropped": dropped}
