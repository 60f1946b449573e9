import datetime

from pydantic import BaseModel


class VehicleState(BaseModel):
    vehicle_id: str
    route_id: str | None = None
    lat: float
    lng: float
    speed: float | None = None
    delay: float | None = None
    timestamp: datetime.datetime | None = None  # feed time of the last update
    last_seen: datetime.datetime  # monitor clock time of the last update
