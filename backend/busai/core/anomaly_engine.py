"""Main orchestrator: fans position updates out to the detectors and runs the tick cycle."""

import datetime
import logging
import time
from collections.abc import Callable
from enum import Enum

from busai.core.diversion import DiversionRecommender
from busai.core.headway_estimator import HeadwayEstimator
from busai.core.occupancy_grid import OccupancyGrid
from busai.core.stuck_detector import StuckDetector
from busai.core.vehicle_tracker import VehicleTracker
from busai.schemas.alert import Alert, Severity, Snapshot
from busai.schemas.position import PositionUpdate

logger = logging.getLogger(__name__)

_SEVERITY_ORDER = {Severity.HIGH: 0, Severity.MEDIUM: 1}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Phase(str, Enum):
    IDLE = "idle"
    SMOOTHING = "smoothing"
    DETECTING = "detecting"
    PUBLISHING = "publishing"


class AnomalyEngine:
    """Owns the per-fleet detector state and produces one Snapshot per tick.

    Ingestion and ticks must be serialized by the caller. Under FastAPI and
    AsyncIOScheduler both run on the same event loop, and neither ``ingest``
    nor ``tick`` awaits, so each runs to completion before the other starts.
    """

    def __init__(
        self,
        tracker: VehicleTracker | None = None,
        stuck_detector: StuckDetector | None = None,
        grid: OccupancyGrid | None = None,
        headway: HeadwayEstimator | None = None,
        recommender: DiversionRecommender | None = None,
        publisher=None,
        vehicle_stale_seconds: float = 0,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        self.tracker = tracker or VehicleTracker()
        self.stuck_detector = stuck_detector or StuckDetector()
        self.grid = grid or OccupancyGrid()
        self.headway = headway or HeadwayEstimator()
        self.recommender = recommender or DiversionRecommender(self.tracker)
        self.publisher = publisher
        self.vehicle_stale_seconds = vehicle_stale_seconds
        self.clock = clock

        self.phase = Phase.IDLE
        self._snapshot = Snapshot(ts=self.clock())
        self._last_tick: datetime.datetime | None = None
        self._last_cycle_ms: float | None = None
        self._detector_failures: dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings, publisher=None) -> "AnomalyEngine":
        tracker = VehicleTracker()
        return cls(
            tracker=tracker,
            stuck_detector=StuckDetector(
                stuck_duration_seconds=settings.stuck_duration_seconds,
                stopped_speed=settings.stopped_speed_threshold,
            ),
            grid=OccupancyGrid(
                cell_size_deg=settings.grid_cell_size_degrees,
                alpha=settings.smoothing_alpha,
                low_threshold=settings.coverage_low_threshold,
                high_threshold=settings.coverage_high_threshold,
            ),
            headway=HeadwayEstimator(
                alpha=settings.smoothing_alpha,
                target_headway_minutes=settings.target_headway_minutes,
                risk_factor=settings.headway_risk_factor,
            ),
            recommender=DiversionRecommender(
                tracker,
                search_radius_m=settings.diversion_search_radius_m,
                max_delay_minutes=settings.diversion_max_delay_minutes,
            ),
            publisher=publisher,
            vehicle_stale_seconds=settings.vehicle_stale_seconds,
        )

    def ingest(self, update: PositionUpdate) -> bool:
        """Feed one position update to every component. False if it was dropped."""
        now = self.clock()
        if not self.tracker.record(update, now):
            return False
        self.stuck_detector.observe(update.vehicle_id, update.speed, now)
        self.grid.observe(update.lat, update.lng)
        self.headway.observe(update.route_id, now)
        return True

    def get_latest_snapshot(self) -> Snapshot:
        return self._snapshot

    def _evict_stale(self, now: datetime.datetime) -> None:
        if self.vehicle_stale_seconds <= 0:
            return
        expired = self.tracker.evict_stale(now, self.vehicle_stale_seconds)
        for vid in expired:
            self.stuck_detector.forget(vid)
        idle_routes = self.headway.forget_idle(now, self.vehicle_stale_seconds)
        if expired or idle_routes:
            logger.info(
                "Evicted %d stale vehicles and %d idle routes", len(expired), len(idle_routes),
            )

    def _run_detector(self, name: str, detect: Callable[[], list[Alert]]) -> list[Alert]:
        try:
            return detect()
        except Exception:
            self._detector_failures[name] = self._detector_failures.get(name, 0) + 1
            logger.exception("Detector %s failed, skipping its alerts this tick", name)
            return []

    def tick(self) -> Snapshot:
        """Smooth, detect and replace the published snapshot. Returns the new snapshot."""
        started = time.perf_counter()
        now = self.clock()

        self.phase = Phase.SMOOTHING
        self._evict_stale(now)
        self.grid.smooth()
        self.headway.smooth(now)

        self.phase = Phase.DETECTING
        items: list[Alert] = []
        items += self._run_detector(
            "stuck_bus",
            lambda: self.stuck_detector.evaluate(now, self.tracker, self.recommender),
        )
        items += self._run_detector(
            "headway_risk",
            lambda: self.headway.detect_risks(self.tracker, self.recommender),
        )
        items += self._run_detector(
            "coverage_gap",
            lambda: self.grid.detect_gaps(self.recommender),
        )
        # list.sort is stable: equal severities keep detector order
        items.sort(key=lambda a: _SEVERITY_ORDER[a.severity])

        self.phase = Phase.PUBLISHING
        self._snapshot = Snapshot(ts=now, items=tuple(items))
        self._last_tick = now
        self._last_cycle_ms = (time.perf_counter() - started) * 1000
        self.phase = Phase.IDLE

        logger.info(
            "Tick: %d alerts from %d vehicles (%d stuck, %d cells, %d routes)",
            len(items), len(self.tracker), len(self.stuck_detector),
            len(self.grid), len(self.headway),
        )
        return self._snapshot

    async def run_cycle(self) -> None:
        """Scheduled job: one tick, then hand the snapshot to the publisher."""
        try:
            snapshot = self.tick()
        except Exception:
            self.phase = Phase.IDLE
            logger.exception("Error in anomaly tick")
            return

        if self.publisher is None:
            return
        try:
            await self.publisher.publish(snapshot.model_dump(mode="json"))
        except Exception:
            logger.exception("Failed to publish alert snapshot")

    def get_diagnostics(self) -> dict:
        return {
            "phase": self.phase.value,
            "last_tick": self._last_tick.isoformat() if self._last_tick else None,
            "last_cycle_ms": round(self._last_cycle_ms, 2) if self._last_cycle_ms is not None else None,
            "tracked_vehicles": len(self.tracker),
            "stuck_vehicles": len(self.stuck_detector),
            "grid_cells": len(self.grid),
            "route_windows": len(self.headway),
            "alerts": len(self._snapshot.items),
            "detector_failures": dict(self._detector_failures),
        }
