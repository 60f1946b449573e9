import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PositionUpdate(BaseModel):
    """One normalized position record from the ingestion feed.

    Every field is optional: the feed occasionally emits partial records, which
    are dropped by the tracker rather than rejected here.
    """

    # Feeds often send numeric vehicle and route ids
    model_config = ConfigDict(coerce_numbers_to_str=True)

    vehicle_id: str | None = Field(
        default=None, validation_alias=AliasChoices("vehicle_id", "vehicleId", "busId"),
    )
    route_id: str | None = Field(
        default=None, validation_alias=AliasChoices("route_id", "routeId"),
    )
    lat: float | None = Field(
        default=None, validation_alias=AliasChoices("lat", "latitude"),
    )
    lng: float | None = Field(
        default=None, validation_alias=AliasChoices("lng", "lon", "longitude"),
    )
    speed: float | None = None
    delay: float | None = Field(
        default=None, validation_alias=AliasChoices("delay", "delayMinutes", "delay_minutes"),
    )
    timestamp: datetime.datetime | None = None
