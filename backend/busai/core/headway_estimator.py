"""Per-route update rate as a proxy for headway.

Every route keeps a one-minute bucket of position updates. At each tick the
bucket count is folded into a moving average of updates per minute, and the
estimated headway is ``60 / average`` minutes.
"""

import datetime
import logging
import math
from dataclasses import dataclass

from busai.core.diversion import DiversionRecommender
from busai.core.vehicle_tracker import VehicleTracker
from busai.schemas.alert import Alert, AlertType, Severity, Solution
from busai.schemas.vehicle import VehicleState

logger = logging.getLogger(__name__)

EWMA_ALPHA = 0.5
TARGET_HEADWAY_MIN = 10.0
# Alert once the estimate exceeds target by this factor
RISK_FACTOR = 1.5
WINDOW_SECONDS = 60


def _minute_bucket(now: datetime.datetime) -> int:
    return math.floor(now.timestamp() / WINDOW_SECONDS) * WINDOW_SECONDS


@dataclass
class RouteWindow:
    window_start: int
    last_update: datetime.datetime
    count: int = 0
    ewma_count: float = 0.0


class HeadwayEstimator:
    def __init__(
        self,
        alpha: float = EWMA_ALPHA,
        target_headway_minutes: float = TARGET_HEADWAY_MIN,
        risk_factor: float = RISK_FACTOR,
    ) -> None:
        self.alpha = alpha
        self.target_headway_minutes = target_headway_minutes
        self.risk_factor = risk_factor
        self._routes: dict[str, RouteWindow] = {}

    def __len__(self) -> int:
        return len(self._routes)

    def window(self, route_id: str) -> RouteWindow | None:
        return self._routes.get(route_id)

    def observe(self, route_id: str | None, now: datetime.datetime) -> None:
        if not route_id:
            return
        bucket = _minute_bucket(now)
        rec = self._routes.get(route_id)
        if rec is None:
            rec = self._routes[route_id] = RouteWindow(window_start=bucket, last_update=now)
        if rec.window_start != bucket:
            rec.window_start = bucket
            rec.count = 0
        rec.count += 1
        rec.last_update = now

    def smooth(self, now: datetime.datetime) -> None:
        """Fold each route's current bucket into its average.

        Buckets whose minute has already passed are rolled forward afterwards,
        so a route that stops reporting decays instead of holding its last rate.
        """
        bucket = _minute_bucket(now)
        for rec in self._routes.values():
            rec.ewma_count = self.alpha * rec.count + (1 - self.alpha) * rec.ewma_count
            if rec.window_start != bucket:
                rec.window_start = bucket
                rec.count = 0

    def estimated_headway(self, route_id: str) -> float | None:
        """Minutes between vehicles, or None without a positive rate."""
        rec = self._routes.get(route_id)
        if rec is None or rec.ewma_count <= 0:
            return None
        return 60 / rec.ewma_count

    def forget_idle(self, now: datetime.datetime, max_age_seconds: float) -> list[str]:
        idle = [
            rid for rid, rec in self._routes.items()
            if (now - rec.last_update).total_seconds() > max_age_seconds
        ]
        for rid in idle:
            del self._routes[rid]
        return idle

    @staticmethod
    def _most_delayed(tracker: VehicleTracker, route_id: str) -> VehicleState | None:
        """Most delayed tracked vehicle on the route; ties go to the lowest vehicle id."""
        anchor = None
        for vehicle_id, state in tracker.all_states():
            if state.route_id != route_id:
                continue
            if anchor is None:
                anchor = state
                continue
            delay, best = state.delay or 0, anchor.delay or 0
            if delay > best or (delay == best and vehicle_id < anchor.vehicle_id):
                anchor = state
        return anchor

    def detect_risks(
        self, tracker: VehicleTracker, recommender: DiversionRecommender,
    ) -> list[Alert]:
        alerts = []
        limit = self.target_headway_minutes * self.risk_factor
        for route_id in list(self._routes):
            headway = self.estimated_headway(route_id)
            if headway is None or headway <= limit:
                continue

            solution = None
            anchor = self._most_delayed(tracker, route_id)
            if anchor:
                candidate = recommender.find_candidate(anchor.lat, anchor.lng, route_id)
                if candidate:
                    solution = Solution(
                        action="Fill Service Gap",
                        suggestion=(
                            f"Divert bus {candidate.vehicle_id} (Route {candidate.route_id}) "
                            f"to cover upcoming stops on Route {route_id} and reduce wait times."
                        ),
                        target_vehicle_id=candidate.vehicle_id,
                    )

            alerts.append(Alert(
                type=AlertType.HEADWAY_RISK,
                severity=Severity.HIGH,
                message=f"Severe headway gap on route {route_id}",
                route_id=route_id,
                details={
                    "estimated_headway_minutes": round(headway, 1),
                    "target_minutes": self.target_headway_minutes,
                },
                solution=solution,
            ))
        return alerts
