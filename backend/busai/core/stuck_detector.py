"""Continuous low-speed tracking for stalled-vehicle alerts."""

import datetime
import logging

from busai.core.diversion import DiversionRecommender
from busai.core.vehicle_tracker import VehicleTracker
from busai.schemas.alert import Alert, AlertType, Severity, Solution

logger = logging.getLogger(__name__)

# Feed speed at or below this counts as stopped
STOPPED_SPEED = 1.0
STUCK_DURATION_SECONDS = 5 * 60


class StuckDetector:
    """Remembers since when each vehicle has been reporting a stopped speed."""

    def __init__(
        self,
        stuck_duration_seconds: float = STUCK_DURATION_SECONDS,
        stopped_speed: float = STOPPED_SPEED,
    ) -> None:
        self.stuck_duration_seconds = stuck_duration_seconds
        self.stopped_speed = stopped_speed
        # vehicle_id -> when continuous low speed began
        self._since: dict[str, datetime.datetime] = {}

    def __len__(self) -> int:
        return len(self._since)

    def observe(self, vehicle_id: str, speed: float | None, now: datetime.datetime) -> None:
        if speed is not None and speed <= self.stopped_speed:
            self._since.setdefault(vehicle_id, now)
        else:
            self._since.pop(vehicle_id, None)

    def since(self, vehicle_id: str) -> datetime.datetime | None:
        return self._since.get(vehicle_id)

    def forget(self, vehicle_id: str) -> None:
        self._since.pop(vehicle_id, None)

    def evaluate(
        self,
        now: datetime.datetime,
        tracker: VehicleTracker,
        recommender: DiversionRecommender,
    ) -> list[Alert]:
        """One ``stuck_bus`` alert per vehicle stopped for at least the threshold.

        Alerts repeat on every call until the vehicle moves again.
        """
        alerts = []
        for vehicle_id, since in list(self._since.items()):
            stuck_s = (now - since).total_seconds()
            if stuck_s < self.stuck_duration_seconds:
                continue

            minutes = round(stuck_s / 60)
            state = tracker.current_state_of(vehicle_id)
            route_id = state.route_id if state else None

            solution = None
            if state:
                candidate = recommender.find_candidate(
                    state.lat, state.lng, route_id, exclude_vehicle_id=vehicle_id,
                )
                if candidate:
                    solution = Solution(
                        action="Divert & Reroute",
                        suggestion=(
                            f"Divert bus {candidate.vehicle_id} (Route {candidate.route_id}) "
                            f"to bypass the incident area and continue service on Route {route_id}."
                        ),
                        target_vehicle_id=candidate.vehicle_id,
                    )

            alerts.append(Alert(
                type=AlertType.STUCK_BUS,
                severity=Severity.HIGH,
                message=f"Possible incident: {vehicle_id} stationary for > {minutes} min",
                vehicle_id=vehicle_id,
                route_id=route_id,
                details={"route_id": route_id or "UNKNOWN", "minutes_stuck": minutes},
                solution=solution,
            ))
        return alerts
