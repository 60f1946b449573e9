"""Tests for the HTTP and WebSocket endpoints."""

import asyncio

import orjson
from fastapi import FastAPI
from fastapi.testclient import TestClient

from busai.api import alerts, diagnostics, positions, vehicles, ws
from busai.core.anomaly_engine import AnomalyEngine
from busai.core.broadcaster import Broadcaster

from helpers import FakeClock


def _client(monkeypatch, engine, broadcaster=None) -> TestClient:
    for module in (positions, alerts, vehicles, diagnostics):
        monkeypatch.setattr(module, "engine", engine)
    monkeypatch.setattr(ws, "broadcaster", broadcaster)
    monkeypatch.setattr(ws, "engine", engine)

    app = FastAPI()
    for module in (positions, alerts, vehicles, diagnostics, ws):
        app.include_router(module.router)
    return TestClient(app)


def test_ingest_accepts_camel_case_and_drops_bad_records(monkeypatch):
    engine = AnomalyEngine(clock=FakeClock())
    client = _client(monkeypatch, engine)

    resp = client.post("/api/positions", json=[
        {"busId": "V1", "routeId": "R1", "lat": 40.70, "lng": -74.0, "speed": 0, "delay": 2},
        {"routeId": "R1", "lat": 40.70, "lng": -74.0},
        {"vehicle_id": "V2", "lat": "not a number", "lng": -74.0},
        "garbage",
    ])
    assert resp.status_code == 200
    assert resp.json() == {"accepted": 1, "dropped": 3}
    assert engine.tracker.current_state_of("V1").delay == 2


def test_ingest_numeric_ids(monkeypatch):
    engine = AnomalyEngine(clock=FakeClock())
    client = _client(monkeypatch, engine)

    resp = client.post("/api/positions", json=[
        {"busId": 17, "routeId": 5, "lat": 40.70, "lng": -74.0, "speed": 0},
        {"busId": "V2", "routeId": 5, "lat": 40.71, "lng": -74.0, "speed": 10},
    ])
    assert resp.json() == {"accepted": 2, "dropped": 0}
    assert engine.tracker.current_state_of("17").route_id == "5"
    assert engine.stuck_detector.since("17") is not None
    assert engine.headway.window("5").count == 2


def test_ingest_wrapped_payload(monkeypatch):
    engine = AnomalyEngine(clock=FakeClock())
    client = _client(monkeypatch, engine)

    resp = client.post("/api/positions", json={"vehicles": [
        {"vehicleId": "V1", "routeId": "R1", "latitude": 40.7, "longitude": -74.0, "speed": 5},
    ]})
    assert resp.json() == {"accepted": 1, "dropped": 0}


def test_vehicle_reads(monkeypatch):
    engine = AnomalyEngine(clock=FakeClock())
    client = _client(monkeypatch, engine)
    client.post("/api/positions", json=[
        {"vehicle_id": "V1", "route_id": "R1", "lat": 40.70, "lng": -74.0},
        {"vehicle_id": "V2", "route_id": "R2", "lat": 40.71, "lng": -74.0},
    ])

    assert len(client.get("/api/vehicles").json()) == 2
    only_r2 = client.get("/api/vehicles", params={"route": "R2"}).json()
    assert [v["vehicle_id"] for v in only_r2] == ["V2"]
    assert client.get("/api/vehicles/V1").json()["route_id"] == "R1"


def test_suggestions_before_and_after_tick(monkeypatch):
    clock = FakeClock()
    engine = AnomalyEngine(clock=clock)
    client = _client(monkeypatch, engine)

    assert client.get("/api/ai/suggestions").json()["items"] == []

    client.post("/api/positions", json=[
        {"vehicle_id": "V1", "route_id": "R1", "lat": 40.70, "lng": -74.0, "speed": 0},
    ])
    clock.advance(300)
    engine.tick()

    items = client.get("/api/ai/suggestions").json()["items"]
    assert items[0]["type"] == "stuck_bus"
    assert items[0]["severity"] == "high"
    assert items[0]["solution"] is None


def test_diagnostics(monkeypatch):
    engine = AnomalyEngine(clock=FakeClock())
    client = _client(monkeypatch, engine)
    client.post("/api/positions", json=[
        {"vehicle_id": "V1", "route_id": "R1", "lat": 40.70, "lng": -74.0, "speed": 0},
    ])

    diag = client.get("/api/diagnostics").json()
    assert diag["tracked_vehicles"] == 1
    assert diag["stuck_vehicles"] == 1
    assert diag["phase"] == "idle"

    route = client.get("/api/diagnostics/routes/R1").json()
    assert route["count"] == 1
    assert route["estimated_headway_minutes"] is None
    assert client.get("/api/diagnostics/routes/NOPE").json() == {"error": "Route not found"}


def test_ws_sends_current_snapshot(monkeypatch):
    broadcaster = Broadcaster()
    asyncio.run(broadcaster.publish({"ts": "2024-03-04T08:00:00Z", "items": []}))
    client = _client(monkeypatch, AnomalyEngine(clock=FakeClock()), broadcaster)

    with client.websocket_connect("/ws/alerts") as websocket:
        data = orjson.loads(websocket.receive_bytes())
    assert data["type"] == "snapshot"
    assert data["items"] == []


def test_ws_sends_empty_snapshot_before_first_tick(monkeypatch):
    clock = FakeClock()
    client = _client(monkeypatch, AnomalyEngine(clock=clock), Broadcaster())

    with client.websocket_connect("/ws/alerts") as websocket:
        data = orjson.loads(websocket.receive_bytes())
    assert data["type"] == "snapshot"
    assert data["items"] == []
    assert data["ts"].startswith("2024-03-04T08:00:05")
