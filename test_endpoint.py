"""
Tests for the DoseWise dashboard API.

Uses FastAPI's TestClient against a temporary database and session
state file.

Run with: python test_endpoint.py
"""

import json
import os
import sys
import tempfile
import time
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from fastapi.testclient import TestClient

from dosewise.constants import (
    adherence_data_key,
    classifier_source_request_key,
    detection_enabled_key,
    reset_requested_key,
    simulated_detection_key,
)
from dosewise.endpoint.session_state import write_state


def _client(tmp):
    os.environ["DB_PATH"] = os.path.join(tmp, "dosewise.db")
    os.environ["SESSION_STATE_FILE"] = os.path.join(tmp, "session_state.json")

    from dosewise.endpoint import shared
    from dosewise.endpoint.server import app

    shared.cleanup_shared_resources()
    return TestClient(app), shared


def _seed(db, days):
    log = []
    for day, morning, evening in days:
        log.append({
            "date": day,
            "morning": {"scheduled": "08:00", "taken": "08:03" if morning else None, "pillType": "pill_morning"},
            "evening": {"scheduled": "20:00", "taken": "20:07" if evening else None, "pillType": "pill_evening"},
        })
    document = {
        "adherenceLog": log,
        "currentStreak": 0,
        "totalPillsTaken": sum(int(m) + int(e) for _d, m, e in days),
        "totalPillsScheduled": 2 * len(days),
    }
    db.set_blob(adherence_data_key, json.dumps(document))


def test_health_and_dashboard():
    with tempfile.TemporaryDirectory() as tmp:
        client, shared = _client(tmp)
        with client:
            health = client.get("/health").json()
            assert health["status"] == "healthy"
            assert health["database"] == "connected"
            assert health["session_active"] is False

            page = client.get("/")
            assert page.status_code == 200
            assert "DoseWise" in page.text
        shared.cleanup_shared_resources()
    print("PASS test_health_and_dashboard")


def test_stats_and_week_views():
    today = date.today()
    days = [
        ((today - timedelta(days=2)).isoformat(), True, True),
        ((today - timedelta(days=1)).isoformat(), False, False),
        (today.isoformat(), True, False),
    ]
    with tempfile.TemporaryDirectory() as tmp:
        client, shared = _client(tmp)
        with client:
            _seed(shared.get_db(), days)

            stats = client.get("/api/stats").json()
            assert stats == {
                "currentStreak": 1,
                "totalPillsTaken": 3,
                "totalPillsScheduled": 6,
                "adherenceRate": 50,
            }

            week = client.get("/api/week").json()
            assert [d["status"] for d in week] == ["full", "none", "partial"]

            todays = client.get("/api/today").json()
            assert todays["date"] == today.isoformat()
            assert todays["morning"]["taken"] == "08:03"
            assert todays["evening"]["taken"] is None

            log = client.get("/api/log?limit=2").json()
            assert [d["date"] for d in log] == [days[2][0], days[1][0]], "newest first"
        shared.cleanup_shared_resources()
    print("PASS test_stats_and_week_views")


def test_empty_store_views():
    with tempfile.TemporaryDirectory() as tmp:
        client, shared = _client(tmp)
        with client:
            assert client.get("/api/stats").json()["adherenceRate"] == 0
            assert client.get("/api/week").json() == []
            todays = client.get("/api/today").json()
            assert todays["morning"]["scheduled"] == "08:00"
            assert todays["morning"]["taken"] is None
        shared.cleanup_shared_resources()
    print("PASS test_empty_store_views")


def test_control_commands_write_config():
    with tempfile.TemporaryDirectory() as tmp:
        client, shared = _client(tmp)
        with client:
            db = shared.get_db()

            assert client.post("/api/detection/start").json()["detection_enabled"] is True
            assert db.get_config(detection_enabled_key) == '1'
            client.post("/api/detection/stop")
            assert db.get_config(detection_enabled_key) == '0'

            response = client.post("/api/classifier-source", json={"source": " weights/pills.pt "})
            assert response.status_code == 200
            assert db.get_config(classifier_source_request_key) == "weights/pills.pt"
            assert client.post("/api/classifier-source", json={"source": ""}).status_code == 400

            client.post("/api/detection/simulate", json={"label": "Pill Morning"})
            request = json.loads(db.get_config(simulated_detection_key))
            assert request["label"] == "pill_morning"
            assert request["confidence"] == 0.98

            client.post("/api/reset")
            assert db.get_config(reset_requested_key) == '1'
        shared.cleanup_shared_resources()
    print("PASS test_control_commands_write_config")


def test_session_snapshot_drops_expired_alert():
    with tempfile.TemporaryDirectory() as tmp:
        client, shared = _client(tmp)
        with client:
            state_file = os.environ["SESSION_STATE_FILE"]
            now = time.time()
            write_state({
                "detecting": True,
                "camera_state": "denied",
                "camera_banner": "Camera access denied. Please enable camera permissions.",
                "alert": {"id": 4, "type": "info", "message": "old", "created_at": now - 10, "expires_at": now - 7},
            }, state_file)

            session = client.get("/api/session").json()
            assert session["alert"] is None
            assert session["camera_state"] == "denied"
            assert "_updated_at" not in session

            write_state({
                "alert": {"id": 5, "type": "warning", "message": "stays", "created_at": now, "expires_at": None},
            }, state_file)
            assert client.get("/api/session").json()["alert"]["message"] == "stays"
        shared.cleanup_shared_resources()
    print("PASS test_session_snapshot_drops_expired_alert")


def test_launcher_shares_session_paths():
    from run_endpoint import configure_paths
    from dosewise.endpoint import shared

    with tempfile.TemporaryDirectory() as tmp:
        db_file = os.path.join(tmp, "shared.db")
        state_file = os.path.join(tmp, "shared_state.json")
        assert configure_paths(db_file, state_file) == (os.path.abspath(db_file), os.path.abspath(state_file))
        assert os.environ["DB_PATH"] == os.path.abspath(db_file)
        assert os.environ["SESSION_STATE_FILE"] == os.path.abspath(state_file)

        shared.cleanup_shared_resources()
        assert shared.get_db().db_path == os.path.abspath(db_file)
        shared.cleanup_shared_resources()
    print("PASS test_launcher_shares_session_paths")


if __name__ == "__main__":
    test_health_and_dashboard()
    test_stats_and_week_views()
    test_empty_store_views()
    test_control_commands_write_config()
    test_session_snapshot_drops_expired_alert()
    test_launcher_shares_session_paths()
    print("\nAll endpoint tests passed!")
