"""Shared factories for the detector tests."""

import datetime

from busai.schemas.position import PositionUpdate

BASE_TIME = datetime.datetime(2024, 3, 4, 8, 0, 5, tzinfo=datetime.timezone.utc)


class FakeClock:
    def __init__(self, start: datetime.datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> datetime.datetime:
        self.now += datetime.timedelta(seconds=seconds)
        return self.now


def make_update(
    vehicle_id="V1", route_id="R1", lat=40.7000, lng=-74.0000,
    speed=20.0, delay=0.0,
) -> PositionUpdate:
    return PositionUpdate(
        vehicle_id=vehicle_id, route_id=route_id, lat=lat, lng=lng,
        speed=speed, delay=delay, timestamp=BASE_TIME,
    )
