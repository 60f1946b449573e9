"""Tests for HeadwayEstimator."""

import datetime

import pytest

from busai.core.diversion import DiversionRecommender
from busai.core.headway_estimator import HeadwayEstimator
from busai.core.vehicle_tracker import VehicleTracker
from busai.schemas.alert import AlertType, Severity

from helpers import BASE_TIME, make_update


def _at(seconds: float) -> datetime.datetime:
    return BASE_TIME + datetime.timedelta(seconds=seconds)


def _observe(est, route_id, n, when):
    for _ in range(n):
        est.observe(route_id, when)


def test_counts_within_minute_bucket():
    est = HeadwayEstimator()
    _observe(est, "R1", 3, _at(0))
    _observe(est, "R1", 1, _at(30))
    assert est.window("R1").count == 4


def test_bucket_advance_resets_count():
    est = HeadwayEstimator()
    _observe(est, "R1", 3, _at(0))
    est.observe("R1", _at(60))
    rec = est.window("R1")
    assert rec.count == 1
    assert rec.window_start == int(_at(60).timestamp()) // 60 * 60


def test_updates_without_route_are_ignored():
    est = HeadwayEstimator()
    est.observe(None, _at(0))
    est.observe("", _at(0))
    assert len(est) == 0


def test_no_estimate_without_rate():
    est = HeadwayEstimator()
    assert est.estimated_headway("R1") is None
    est.observe("R1", _at(0))
    assert est.estimated_headway("R1") is None  # ewma only moves at ticks


def test_two_per_minute_is_thirty_minute_headway_and_alerts():
    est = HeadwayEstimator()
    _observe(est, "R1", 4, _at(0))
    est.smooth(_at(10))
    assert est.window("R1").ewma_count == pytest.approx(2.0)
    assert est.estimated_headway("R1") == pytest.approx(30.0)

    alerts = est.detect_risks(VehicleTracker(), DiversionRecommender(VehicleTracker()))
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.type == AlertType.HEADWAY_RISK
    assert alert.severity == Severity.HIGH
    assert alert.route_id == "R1"
    assert alert.details == {"estimated_headway_minutes": 30.0, "target_minutes": 10.0}
    assert alert.solution is None


def test_frequent_route_does_not_alert():
    est = HeadwayEstimator()
    _observe(est, "R1", 20, _at(0))
    est.smooth(_at(10))
    assert est.estimated_headway("R1") == pytest.approx(6.0)
    assert est.detect_risks(VehicleTracker(), DiversionRecommender(VehicleTracker())) == []


def test_elapsed_window_rolls_at_tick_and_decays():
    est = HeadwayEstimator()
    _observe(est, "R1", 4, _at(0))
    est.smooth(_at(70))
    rec = est.window("R1")
    assert rec.ewma_count == pytest.approx(2.0)
    assert rec.count == 0

    est.smooth(_at(130))
    assert rec.ewma_count == pytest.approx(1.0)


def test_solution_anchored_at_most_delayed_vehicle():
    tracker = VehicleTracker()
    tracker.record(make_update("V1", route_id="R1", lat=40.7000, delay=2), BASE_TIME)
    tracker.record(make_update("V2", route_id="R1", lat=40.8000, delay=12), BASE_TIME)
    # Near V2 only
    tracker.record(make_update("X1", route_id="R7", lat=40.8030, delay=0), BASE_TIME)
    # Near V1 only
    tracker.record(make_update("X2", route_id="R8", lat=40.7030, delay=0), BASE_TIME)

    est = HeadwayEstimator()
    _observe(est, "R1", 2, _at(0))
    est.smooth(_at(10))

    alert = est.detect_risks(tracker, DiversionRecommender(tracker))[0]
    assert alert.solution.target_vehicle_id == "X1"
    assert alert.solution.action == "Fill Service Gap"
    assert "Route R1" in alert.solution.suggestion


def test_anchor_tie_prefers_lowest_vehicle_id():
    tracker = VehicleTracker()
    tracker.record(make_update("V2", route_id="R1", lat=40.8000, delay=5), BASE_TIME)
    tracker.record(make_update("V1", route_id="R1", lat=40.7000, delay=5), BASE_TIME)
    anchor = HeadwayEstimator._most_delayed(tracker, "R1")
    assert anchor.vehicle_id == "V1"


def test_forget_idle():
    est = HeadwayEstimator()
    est.observe("R1", _at(0))
    est.observe("R2", _at(800))
    assert est.forget_idle(_at(1000), 900) == ["R1"]
    assert est.window("R1") is None
    assert est.window("R2") is not None
