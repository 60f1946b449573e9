"""Alert snapshot REST API."""

from fastapi import APIRouter

from busai.schemas.alert import Snapshot

router = APIRouter(prefix="/api/ai", tags=["alerts"])

# Will be set by main.py
engine = None


@router.get("/suggestions", response_model=Snapshot | None)
async def get_suggestions():
    """Most recently published alert snapshot."""
    if engine is None:
        return None
    return engine.get_latest_snapshot()
