"""Player, now-playing, sleep-timer and settings routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from radiocore.models import PreferenceState
from radiosync.errors import InvalidRequestError
from radiosync.http import build_url
from radiosync.now_playing import NowPlayingEngine
from radiosync.store import LocalStore

router = APIRouter(tags=["player"])


def _engine(request: Request) -> NowPlayingEngine:
    return request.app.state.now_playing


def _store(request: Request) -> LocalStore:
    return request.app.state.store


class VolumeRequest(BaseModel):
    volume: float = Field(ge=0.0, le=1.0)


class SleepTimerRequest(BaseModel):
    duration: float = Field(gt=0)


class PreferenceRequest(BaseModel):
    target: PreferenceState


class SettingsUpdate(BaseModel):
    play_on_launch: Optional[bool] = None
    selected_timezone: Optional[str] = None
    push_notifications_enabled: Optional[bool] = None
    last_stream_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Now playing
# ---------------------------------------------------------------------------


@router.get("/now-playing")
async def now_playing(request: Request):
    return JSONResponse(_engine(request).to_status_dict())


@router.post("/now-playing/refresh")
async def refresh_now_playing(request: Request):
    engine = _engine(request)
    await engine.refresh_now_playing()
    return JSONResponse(engine.to_status_dict())


@router.post("/now-playing/preference")
async def now_playing_preference(request: Request, body: PreferenceRequest):
    if body.target == PreferenceState.NONE:
        raise HTTPException(status_code=400, detail="target must be 'liked' or 'disliked'")
    state = await _engine(request).toggle_preference(body.target)
    if state is None:
        raise HTTPException(status_code=404, detail="Nothing is playing")
    return JSONResponse({"preference": state.value})


@router.get("/programmes/current-next")
async def current_next(request: Request):
    engine = _engine(request)
    await engine.fetch_current_and_next()
    current = engine.current_programme
    return JSONResponse(
        {
            "current": current.model_dump(mode="json") if current else None,
            "next": [p.model_dump(mode="json") for p in engine.next_programmes],
            "error": engine.error,
        }
    )


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------


@router.post("/player/play")
async def play(request: Request):
    engine = _engine(request)
    await engine.play()
    return JSONResponse(engine.to_status_dict())


@router.post("/player/pause")
async def pause(request: Request):
    engine = _engine(request)
    engine.pause()
    return JSONResponse(engine.to_status_dict())


@router.post("/player/volume")
async def volume(request: Request, body: VolumeRequest):
    _engine(request).set_volume(body.volume)
    return JSONResponse({"volume": body.volume})


# ---------------------------------------------------------------------------
# Sleep timer
# ---------------------------------------------------------------------------


@router.get("/sleep-timer")
async def sleep_timer(request: Request):
    return JSONResponse(_engine(request).to_status_dict()["sleep_timer"])


@router.post("/sleep-timer")
async def start_sleep_timer(request: Request, body: SleepTimerRequest):
    engine = _engine(request)
    await engine.start_sleep_timer(body.duration)
    return JSONResponse(engine.to_status_dict()["sleep_timer"])


@router.delete("/sleep-timer")
async def cancel_sleep_timer(request: Request):
    engine = _engine(request)
    engine.cancel_sleep_timer()
    return JSONResponse(engine.to_status_dict()["sleep_timer"])


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


async def _settings(store: LocalStore) -> dict:
    return {
        "play_on_launch": await store.get_play_on_launch(),
        "selected_timezone": await store.get_selected_timezone(),
        "push_notifications_enabled": await store.get_push_notifications_enabled(),
        "sleep_timer_duration": await store.get_sleep_timer_duration(),
        "last_stream_url": await store.get_last_stream_url(),
    }


@router.get("/settings")
async def get_settings_endpoint(request: Request):
    return JSONResponse(await _settings(_store(request)))


@router.put("/settings")
async def update_settings(request: Request, body: SettingsUpdate):
    """Persist the given settings; timezone changes apply on next start.

    A new stream URL is handed to the player straight away.
    """
    store = _store(request)
    if body.last_stream_url is not None:
        try:
            build_url(body.last_stream_url, {})
        except InvalidRequestError as exc:
            raise HTTPException(status_code=400, detail=exc.detail)
    if body.selected_timezone is not None:
        try:
            await store.set_selected_timezone(body.selected_timezone)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    if body.play_on_launch is not None:
        await store.set_play_on_launch(body.play_on_launch)
    if body.push_notifications_enabled is not None:
        await store.set_push_notifications_enabled(body.push_notifications_enabled)
    if body.last_stream_url is not None:
        await store.set_last_stream_url(body.last_stream_url)
        request.app.state.player.stream_url = body.last_stream_url
    return JSONResponse(await _settings(store))
