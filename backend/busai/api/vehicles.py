"""Vehicle REST API endpoints."""

from fastapi import APIRouter

from busai.schemas.vehicle import VehicleState

router = APIRouter(prefix="/api/vehicles", tags=["vehicles"])

# Will be set by main.py
engine = None


@router.get("", response_model=list[VehicleState])
async def list_vehicles(route: str | None = None):
    """Get all currently tracked vehicles."""
    if engine is None:
        return []
    states = [s for _, s in engine.tracker.all_states()]
    if route:
        states = [s for s in states if s.route_id == route]
    return states


@router.get("/{vehicle_id}", response_model=VehicleState | None)
async def get_vehicle(vehicle_id: str):
    if engine is None:
        return None
    return engine.tracker.current_state_of(vehicle_id)
