"""Diagnostics API for inspecting detector state."""

from fastapi import APIRouter

router = APIRouter(prefix="/api/diagnostics", tags=["diagnostics"])

# Will be set by main.py
engine = None
scheduler = None


@router.get("")
async def get_diagnostics():
    if engine is None:
        return {"error": "Engine not initialized"}
    diag = engine.get_diagnostics()
    if scheduler is not None:
        diag["scheduler_running"] = scheduler.running
        diag["tick_period_seconds"] = scheduler.period_seconds
    return diag


@router.get("/routes/{route_id}")
async def get_route_diagnostics(route_id: str):
    """Headway window for one route."""
    if engine is None:
        return {"error": "Engine not initialized"}
    rec = engine.headway.window(route_id)
    if rec is None:
        return {"error": "Route not found"}
    headway = engine.headway.estimated_headway(route_id)
    return {
        "route_id": route_id,
        "window_start": rec.window_start,
        "count": rec.count,
        "ewma_count": round(rec.ewma_count, 3),
        "estimated_headway_minutes": round(headway, 1) if headway is not None else None,
    }
