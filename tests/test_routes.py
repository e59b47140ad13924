"""Route tests for the service surface (via TestClient).

The app runs its real lifespan against a temporary database; station and
enrichment calls are patched on the engines' clients.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from radiocore.models import Programme, Track
from radiosync.config import get_settings
from radiosync.main import app


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "app.db"))
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "3600")
    get_settings.cache_clear()
    with TestClient(app) as c:
        yield c
    get_settings.cache_clear()


def _tracks():
    return [
        Track(id="t1", title="Song A", artist="Artist A", ts=1_700_000_000_000),
        Track(id="t2", title="Song B", artist="Artist B", ts=1_699_999_000_000),
    ]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_settings_defaults(client):
    data = client.get("/settings").json()
    assert data["play_on_launch"] is False
    assert data["selected_timezone"] == "America/Toronto"
    assert data["push_notifications_enabled"] is False
    assert data["last_stream_url"] == get_settings().primary_stream_url


def test_settings_update(client):
    resp = client.put(
        "/settings",
        json={"selected_timezone": "Europe/Berlin", "push_notifications_enabled": True},
    )
    assert resp.status_code == 200
    data = client.get("/settings").json()
    assert data["selected_timezone"] == "Europe/Berlin"
    assert data["push_notifications_enabled"] is True


def test_settings_rejects_unknown_timezone(client):
    resp = client.put("/settings", json={"selected_timezone": "Nowhere/Special"})
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Player and sleep timer
# ---------------------------------------------------------------------------

def test_play_and_pause(client):
    assert client.post("/player/play").json()["is_active"] is True
    assert client.get("/settings").json()["play_on_launch"] is True
    assert client.post("/player/pause").json()["is_active"] is False


def test_volume_bounds(client):
    assert client.post("/player/volume", json={"volume": 0.3}).status_code == 200
    assert client.app.state.player.volume == 0.3
    assert client.post("/player/volume", json={"volume": 2}).status_code == 422


def test_sleep_timer_start_and_cancel(client):
    data = client.post("/sleep-timer", json={"duration": 600}).json()
    assert data["state"] == "running"
    assert data["duration"] == 600

    data = client.delete("/sleep-timer").json()
    assert data["state"] == "idle"
    assert data["last_outcome"] == "cancelled"
    assert client.get("/settings").json()["sleep_timer_duration"] == 600


def test_sleep_timer_requires_positive_duration(client):
    assert client.post("/sleep-timer", json={"duration": 0}).status_code == 422


def test_now_playing_preference_without_track(client):
    resp = client.post("/now-playing/preference", json={"target": "liked"})
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def test_history_refresh_and_toggle(client):
    history = client.app.state.history
    with patch.object(
        history._station, "fetch_history", AsyncMock(return_value=_tracks())
    ), patch.object(
        history._enrichment, "search_previews_batch", AsyncMock(return_value={})
    ):
        data = client.post("/history/refresh").json()

    assert [t["id"] for t in data["tracks"]] == ["t1", "t2"]
    assert data["has_more"] is False

    resp = client.post("/history/t1/preference", json={"target": "liked"})
    assert resp.json() == {"track_id": "t1", "preference": "liked"}
    resp = client.post("/history/t1/preference", json={"target": "liked"})
    assert resp.json()["preference"] == "none"


def test_history_preference_rejects_none_target(client):
    resp = client.post("/history/t1/preference", json={"target": "none"})
    assert resp.status_code == 400


def test_history_by_day(client):
    history = client.app.state.history
    with patch.object(
        history._station, "fetch_history", AsyncMock(return_value=_tracks())
    ), patch.object(
        history._enrichment, "search_previews_batch", AsyncMock(return_value={})
    ):
        client.post("/history/refresh")

    days = client.get("/history/by-day").json()["days"]
    assert sum(len(d["tracks"]) for d in days) == 2


# ---------------------------------------------------------------------------
# Schedule
# ---------------------------------------------------------------------------

def test_schedule_for_day(client):
    schedule = client.app.state.schedule
    programmes = [Programme(id="p1", name="Drive", start_ts=1_714_557_600_000, end_ts=1_714_561_200_000)]
    with patch.object(
        schedule._station, "fetch_schedule", AsyncMock(return_value=programmes)
    ) as fetch:
        data = client.get("/schedule", params={"day": "2024-05-01"}).json()
        again = client.get("/schedule", params={"day": "2024-05-01"}).json()

    assert data["day"] == "2024-05-01"
    assert [p["id"] for p in data["programmes"]] == ["p1"]
    assert again["programmes"] == data["programmes"]
    assert fetch.await_count == 1


def test_settings_update_stream_url(client):
    resp = client.put("/settings", json={"last_stream_url": "https://stream.test/alt"})
    assert resp.status_code == 200
    assert resp.json()["last_stream_url"] == "https://stream.test/alt"
    assert client.app.state.player.stream_url == "https://stream.test/alt"


def test_settings_rejects_unusable_stream_url(client):
    resp = client.put("/settings", json={"last_stream_url": "not a url"})
    assert resp.status_code == 400
    assert client.get("/settings").json()["last_stream_url"] == get_settings().primary_stream_url
