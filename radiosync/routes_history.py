"""Recently-played routes: list, refresh, paginate, group and rate."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from radiocore.models import PreferenceState
from radiosync.history import HistoryEngine

router = APIRouter(prefix="/history", tags=["history"])


def _engine(request: Request) -> HistoryEngine:
    return request.app.state.history


class PreferenceRequest(BaseModel):
    target: PreferenceState


def _status(engine: HistoryEngine) -> dict:
    return {
        "tracks": [t.model_dump(mode="json") for t in engine.tracks],
        "offset": engine.offset,
        "has_more": engine.has_more,
        "is_loading": engine.is_loading,
        "error": engine.error,
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("")
async def history(request: Request):
    """Return the in-memory list without touching the network."""
    return JSONResponse(_status(_engine(request)))


@router.post("/refresh")
async def refresh(request: Request):
    engine = _engine(request)
    await engine.load_initial()
    return JSONResponse(_status(engine))


@router.post("/more")
async def more(request: Request):
    engine = _engine(request)
    await engine.load_more()
    return JSONResponse(_status(engine))


@router.get("/by-day")
async def by_day(request: Request):
    groups = [
        {"day": day.isoformat(), "tracks": [t.model_dump(mode="json") for t in tracks]}
        for day, tracks in _engine(request).grouped_by_day()
    ]
    return JSONResponse({"days": groups})


@router.post("/{track_id}/preference")
async def set_preference(request: Request, track_id: str, body: PreferenceRequest):
    """Toggle like/dislike; sending the current state again clears it."""
    if body.target == PreferenceState.NONE:
        raise HTTPException(status_code=400, detail="target must be 'liked' or 'disliked'")
    state = await _engine(request).toggle_preference(track_id, body.target)
    return JSONResponse({"track_id": track_id, "preference": state.value})
