"""Smoothed per-cell vehicle presence and coverage-gap detection.

Positions are binned into fixed lat/lng cells. Each cell counts visits between
ticks; at every tick the count is folded into an exponentially weighted moving
average and reset. A cell is a coverage gap when its average is low while one
of its eight neighbours is busy.
"""

import logging
from dataclasses import dataclass

from busai.core.diversion import DiversionRecommender
from busai.core.geo import (
    CellKey,
    cell_center,
    cell_key,
    format_cell_key,
    is_valid_position,
    neighbor_keys,
)
from busai.schemas.alert import Alert, AlertType, Severity, Solution

logger = logging.getLogger(__name__)

CELL_SIZE_DEG = 0.01
EWMA_ALPHA = 0.5
COVERAGE_LOW = 1.0
COVERAGE_NEIGHBOR_HIGH = 3.0


@dataclass
class GridCell:
    count: int = 0
    ewma: float = 0.0


class OccupancyGrid:
    def __init__(
        self,
        cell_size_deg: float = CELL_SIZE_DEG,
        alpha: float = EWMA_ALPHA,
        low_threshold: float = COVERAGE_LOW,
        high_threshold: float = COVERAGE_NEIGHBOR_HIGH,
    ) -> None:
        self.cell_size_deg = cell_size_deg
        self.alpha = alpha
        self.low_threshold = low_threshold
        self.high_threshold = high_threshold
        self._cells: dict[CellKey, GridCell] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def key_for(self, lat: float, lng: float) -> CellKey:
        return cell_key(lat, lng, self.cell_size_deg)

    def cell(self, key: CellKey) -> GridCell | None:
        return self._cells.get(key)

    def observe(self, lat: float, lng: float) -> None:
        if not is_valid_position(lat, lng):
            return
        key = self.key_for(lat, lng)
        self._cells.setdefault(key, GridCell()).count += 1

    def smooth(self) -> None:
        """Fold every cell's count into its average and reset the count."""
        for cell in self._cells.values():
            cell.ewma = self.alpha * cell.count + (1 - self.alpha) * cell.ewma
            cell.count = 0

    def _has_busy_neighbor(self, key: CellKey) -> bool:
        for nk in neighbor_keys(key):
            n = self._cells.get(nk)
            if n and n.ewma >= self.high_threshold:
                return True
        return False

    def detect_gaps(self, recommender: DiversionRecommender) -> list[Alert]:
        """Alert on quiet cells directly adjacent to a busy cell. Run after smooth()."""
        alerts = []
        for key, cell in list(self._cells.items()):
            if cell.ewma >= self.low_threshold or not self._has_busy_neighbor(key):
                continue

            lat, lng = cell_center(key, self.cell_size_deg)
            solution = None
            candidate = recommender.find_candidate(lat, lng, None)
            if candidate:
                solution = Solution(
                    action="Minor Reroute",
                    suggestion=(
                        f"Order a minor reroute for bus {candidate.vehicle_id} "
                        f"(Route {candidate.route_id}) to pass through the low-coverage zone."
                    ),
                    target_vehicle_id=candidate.vehicle_id,
                )

            alerts.append(Alert(
                type=AlertType.COVERAGE_GAP,
                severity=Severity.MEDIUM,
                message="Low service density next to a busy area",
                cell_key=format_cell_key(key),
                details={"ewma": round(cell.ewma, 2), "lat": lat, "lng": lng},
                solution=solution,
            ))
        return alerts
