import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    STUCK_BUS = "stuck_bus"
    HEADWAY_RISK = "headway_risk"
    COVERAGE_GAP = "coverage_gap"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class Solution(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    suggestion: str
    target_vehicle_id: str


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: AlertType
    severity: Severity
    message: str
    vehicle_id: str | None = None
    route_id: str | None = None
    cell_key: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    solution: Solution | None = None


class Snapshot(BaseModel):
    """Alerts published by one scheduler tick, high severity first."""

    model_config = ConfigDict(frozen=True)

    ts: datetime.datetime
    items: tuple[Alert, ...] = ()
