"""Latest known state per vehicle."""

import datetime
import logging

from busai.core.geo import is_valid_position
from busai.schemas.position import PositionUpdate
from busai.schemas.vehicle import VehicleState

logger = logging.getLogger(__name__)


class VehicleTracker:
    """Holds the most recent position, route and delay of every vehicle."""

    def __init__(self) -> None:
        # vehicle_id -> VehicleState
        self._states: dict[str, VehicleState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def record(self, update: PositionUpdate, now: datetime.datetime) -> bool:
        """Overwrite the vehicle's state with ``update``.

        Returns False (and changes nothing) for records without a vehicle id or
        a usable position.
        """
        if not update.vehicle_id or not is_valid_position(update.lat, update.lng):
            logger.debug("Dropping partial position record: %r", update)
            return False

        self._states[update.vehicle_id] = VehicleState(
            vehicle_id=update.vehicle_id,
            route_id=update.route_id,
            lat=update.lat,
            lng=update.lng,
            speed=update.speed,
            delay=update.delay,
            timestamp=update.timestamp,
            last_seen=now,
        )
        return True

    def current_state_of(self, vehicle_id: str) -> VehicleState | None:
        return self._states.get(vehicle_id)

    def all_states(self) -> tuple[tuple[str, VehicleState], ...]:
        """(vehicle_id, state) pairs as of the moment of the call.

        Later writes do not show up in the returned tuple, which can be
        iterated any number of times.
        """
        return tuple(self._states.items())

    def evict_stale(self, now: datetime.datetime, max_age_seconds: float) -> list[str]:
        """Drop vehicles not heard from in ``max_age_seconds``; return their ids."""
        expired = [
            vid for vid, state in self._states.items()
            if (now - state.last_seen).total_seconds() > max_age_seconds
        ]
        for vid in expired:
            del self._states[vid]
        return expired
