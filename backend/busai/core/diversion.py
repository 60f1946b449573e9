"""Nearest eligible vehicle search used to attach a remedy to each alert.

A brute-force scan over every tracked vehicle per call. Fine for a few
thousand vehicles per tick; larger fleets want a spatial index here.
"""

from dataclasses import dataclass

from busai.core.geo import haversine_m
from busai.core.vehicle_tracker import VehicleTracker

SEARCH_RADIUS_M = 2000.0
# Vehicles this late (minutes) or later are not offered for diversion
MAX_DELAY_MINUTES = 10.0


@dataclass
class Candidate:
    vehicle_id: str
    route_id: str | None
    lat: float
    lng: float
    distance_m: float


class DiversionRecommender:
    def __init__(
        self,
        tracker: VehicleTracker,
        search_radius_m: float = SEARCH_RADIUS_M,
        max_delay_minutes: float = MAX_DELAY_MINUTES,
    ) -> None:
        self.tracker = tracker
        self.search_radius_m = search_radius_m
        self.max_delay_minutes = max_delay_minutes

    def find_candidate(
        self,
        lat: float,
        lng: float,
        exclude_route_id: str | None = None,
        exclude_vehicle_id: str | None = None,
    ) -> Candidate | None:
        """Closest on-time vehicle within the search radius, not on ``exclude_route_id``.

        Equal distances go to the lowest vehicle id.
        """
        best: Candidate | None = None
        for vehicle_id, state in self.tracker.all_states():
            if vehicle_id == exclude_vehicle_id:
                continue
            if exclude_route_id is not None and state.route_id == exclude_route_id:
                continue
            if (state.delay or 0) >= self.max_delay_minutes:
                continue

            dist = haversine_m(lat, lng, state.lat, state.lng)
            if dist >= self.search_radius_m:
                continue
            if best is None or (dist, vehicle_id) < (best.distance_m, best.vehicle_id):
                best = Candidate(
                    vehicle_id=vehicle_id,
                    route_id=state.route_id,
                    lat=state.lat,
                    lng=state.lng,
                    distance_m=dist,
                )
        return best
