"""Tests for polling, sleep timer and current/next (radiosync/now_playing.py)."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from radiocore.models import PreferenceState
from radiosync.enrichment_client import EnrichmentClient
from radiosync.now_playing import NowPlayingEngine, SleepTimerState
from radiosync.station_client import StationClient
from tests.conftest import SEARCH_URL, STATION_BASE, MockTransport

UTC = timezone.utc
HISTORY_PATH = "/api/v2/history/"
GRID_PATH = "/api/v2/grid/"
HOUR = 3_600_000


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=UTC).timestamp() * 1000)


NOW = _ms(2024, 5, 1, 10, 30)


def _engine(store, player, station_routes=None, search_responses=None, **kwargs):
    station_transport = MockTransport(station_routes or {})
    search_transport = MockTransport({"/search": search_responses or []})
    engine = NowPlayingEngine(
        StationClient(STATION_BASE, transport=station_transport),
        EnrichmentClient(SEARCH_URL, transport=search_transport),
        store,
        player,
        tz=UTC,
        clock=lambda: NOW,
        **kwargs,
    )
    return engine, station_transport


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_pushes_newest_track(store, player):
    player.active = True
    history = [{"id": "t1", "title": "Song A", "author": "Artist A", "ts": 1_700_000_000}]
    engine, transport = _engine(
        store,
        player,
        {HISTORY_PATH: [history]},
        search_responses=[{"results": [{"previewUrl": "https://audio.test/a.m4a"}]}],
    )
    await engine.refresh_now_playing()

    track = engine.now_playing_track
    assert track.id == "t1"
    assert track.ts == 1_700_000_000_000
    assert track.start_date == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert track.preview_url == "https://audio.test/a.m4a"
    assert player.pushes == [("Song A", "Artist A", "", None, 0.0)]
    assert transport.params() == {"limit": "8", "offset": "0", "server": "1"}


@pytest.mark.asyncio
async def test_refresh_skipped_while_inactive(store, player):
    engine, transport = _engine(store, player, {HISTORY_PATH: [[]]})
    await engine.refresh_now_playing()
    assert transport.calls == []
    assert player.pushes == []


@pytest.mark.asyncio
async def test_refresh_skipped_while_loading(store, player):
    player.active = True
    engine, transport = _engine(store, player, {HISTORY_PATH: [[]]})
    engine.is_loading = True
    await engine.refresh_now_playing()
    assert transport.calls == []


@pytest.mark.asyncio
async def test_refresh_error_keeps_previous_track(store, player):
    player.active = True
    history = [{"id": "t1", "title": "Song A", "author": "Artist A", "ts": 1_700_000_000}]
    engine, _ = _engine(store, player, {HISTORY_PATH: [history, {"nothing": "here"}]})
    await engine.refresh_now_playing()
    await engine.refresh_now_playing()

    assert engine.now_playing_track.id == "t1"
    assert engine.error == "Failed to parse response"
    assert engine.is_loading is False
    assert len(player.pushes) == 1


@pytest.mark.asyncio
async def test_refresh_joins_stored_preference(store, player):
    player.active = True
    await store.set_preference("t1", PreferenceState.LIKED)
    engine, _ = _engine(store, player, {HISTORY_PATH: [[{"id": "t1", "ts": 1}]]})
    await engine.refresh_now_playing()
    assert engine.now_playing_track.preference == PreferenceState.LIKED


@pytest.mark.asyncio
async def test_preference_toggle_on_now_playing(store, player):
    player.active = True
    engine, _ = _engine(store, player, {HISTORY_PATH: [[{"id": "t1", "ts": 1}]]})
    assert await engine.toggle_preference(PreferenceState.LIKED) is None

    await engine.refresh_now_playing()
    assert await engine.toggle_preference(PreferenceState.LIKED) == PreferenceState.LIKED
    assert await engine.toggle_preference(PreferenceState.DISLIKED) == PreferenceState.DISLIKED
    assert await store.get_preference("t1") == PreferenceState.DISLIKED


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_polling_inactive_player_makes_no_requests(store, player):
    engine, transport = _engine(store, player, {HISTORY_PATH: [[]]}, poll_interval=0.01)
    engine.start_polling()
    assert engine.is_polling
    await asyncio.sleep(0.08)
    await engine.stop_polling()

    assert transport.calls == []
    assert not engine.is_polling


@pytest.mark.asyncio
async def test_poll_loop_survives_errors(store, player):
    engine, _ = _engine(store, player, poll_interval=0.01)
    ticks = []

    async def flaky():
        ticks.append(1)
        if len(ticks) == 1:
            raise RuntimeError("boom")

    with patch.object(engine, "refresh_now_playing", AsyncMock(side_effect=flaky)):
        engine.start_polling()
        await asyncio.sleep(0.1)
        await engine.stop_polling()

    assert len(ticks) >= 2


# ---------------------------------------------------------------------------
# Playback control
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_play_remembers_play_on_launch(store, player):
    engine, _ = _engine(store, player)
    await engine.play()
    assert player.play_calls == 1
    assert await store.get_play_on_launch() is True

    await engine.toggle_play_pause()
    assert player.pause_calls == 1


@pytest.mark.asyncio
async def test_volume_is_clamped(store, player):
    engine, _ = _engine(store, player)
    engine.set_volume(1.5)
    assert player.volume == 1.0
    engine.set_volume(-1)
    assert player.volume == 0.0


# ---------------------------------------------------------------------------
# Sleep timer
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sleep_timer_fires_once(store, player):
    player.active = True
    engine, _ = _engine(store, player)
    await engine.start_sleep_timer(0.05)
    assert engine.sleep_timer_state == SleepTimerState.RUNNING

    await asyncio.sleep(0.2)
    assert player.pause_calls == 1
    assert engine.sleep_timer_state == SleepTimerState.IDLE
    assert engine.last_sleep_outcome == SleepTimerState.FIRED
    assert engine.sleep_timer_remaining == 0.0


@pytest.mark.asyncio
async def test_cancel_before_deadline_never_pauses(store, player):
    player.active = True
    engine, _ = _engine(store, player)
    await engine.start_sleep_timer(0.2)
    await asyncio.sleep(0.1)
    engine.cancel_sleep_timer()
    await asyncio.sleep(0.2)

    assert player.pause_calls == 0
    assert engine.sleep_timer_state == SleepTimerState.IDLE
    assert engine.last_sleep_outcome == SleepTimerState.CANCELLED


@pytest.mark.asyncio
async def test_restart_supersedes_pending_timer(store, player):
    player.active = True
    engine, _ = _engine(store, player)
    await engine.start_sleep_timer(0.05)
    await engine.start_sleep_timer(0.5)
    await asyncio.sleep(0.15)

    assert player.pause_calls == 0
    assert engine.sleep_timer_state == SleepTimerState.RUNNING
    assert 0 < engine.sleep_timer_remaining <= 0.5
    engine.cancel_sleep_timer()


@pytest.mark.asyncio
async def test_cancel_during_slow_persist_wins(store, player):
    player.active = True
    engine, _ = _engine(store, player)

    async def slow_write(seconds):
        await asyncio.sleep(0.1)

    with patch.object(store, "set_sleep_timer_duration", AsyncMock(side_effect=slow_write)):
        starting = asyncio.create_task(engine.start_sleep_timer(0.05))
        await asyncio.sleep(0.01)
        engine.cancel_sleep_timer()
        await starting
        await asyncio.sleep(0.1)

    assert player.pause_calls == 0
    assert engine.sleep_timer_state == SleepTimerState.IDLE
    assert engine.last_sleep_outcome == SleepTimerState.CANCELLED


@pytest.mark.asyncio
async def test_stale_generation_does_not_pause(store, player):
    engine, _ = _engine(store, player)
    await engine.start_sleep_timer(10)
    stale = engine._sleep_generation - 1
    await engine._sleep_then_pause(0, stale)
    assert player.pause_calls == 0
    engine.cancel_sleep_timer()


@pytest.mark.asyncio
async def test_sleep_timer_duration_persisted_and_restored(store, player):
    engine, _ = _engine(store, player)
    await engine.start_sleep_timer(900)
    engine.cancel_sleep_timer()

    fresh, _ = _engine(store, player)
    await fresh.restore()
    assert fresh.sleep_timer_duration == 900.0


@pytest.mark.asyncio
async def test_non_positive_duration_rejected(store, player):
    engine, _ = _engine(store, player)
    with pytest.raises(ValueError):
        await engine.start_sleep_timer(0)
    assert engine.sleep_timer_state == SleepTimerState.IDLE


# ---------------------------------------------------------------------------
# Current / next
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_current_and_next_from_rest_of_day(store, player):
    grid = [
        {"id": f"p{h}", "name": f"p{h}", "start_ts": _ms(2024, 5, 1, h), "end_ts": _ms(2024, 5, 1, h + 1)}
        for h in range(10, 18)
    ]
    engine, transport = _engine(store, player, {GRID_PATH: [grid]})
    await engine.fetch_current_and_next()

    assert engine.current_programme.id == "p10"
    assert [p.id for p in engine.next_programmes] == ["p11", "p12", "p13", "p14", "p15"]
    params = transport.params()
    assert params["start_ts"] == str(NOW)
    assert params["end_ts"] == str(_ms(2024, 5, 2))


@pytest.mark.asyncio
async def test_current_and_next_error_is_reported(store, player):
    engine, _ = _engine(store, player, {GRID_PATH: [{"bad": "shape"}]})
    await engine.fetch_current_and_next()
    assert engine.current_programme is None
    assert engine.next_programmes == []
    assert engine.error == "Failed to parse response"


@pytest.mark.asyncio
async def test_status_dict(store, player):
    engine, _ = _engine(store, player)
    status = engine.to_status_dict()
    assert status["track"] is None
    assert status["is_active"] is False
    assert status["sleep_timer"]["state"] == "idle"
