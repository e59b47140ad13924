"""Programme grid routes."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from radiocore.models import Programme
from radiosync.schedule import ScheduleEngine

router = APIRouter(prefix="/schedule", tags=["schedule"])


def _engine(request: Request) -> ScheduleEngine:
    return request.app.state.schedule


def _dump(programmes: list[Programme]) -> list[dict]:
    return [p.model_dump(mode="json") for p in programmes]


@router.get("")
async def schedule(request: Request, day: Optional[date] = None):
    """Programmes for *day* (default today), cache first."""
    engine = _engine(request)
    await engine.select_day(day or engine.today())
    return JSONResponse(
        {
            "day": engine.selected_day.isoformat(),
            "programmes": _dump(engine.programmes),
            "error": engine.error,
        }
    )


@router.post("/week")
async def week(request: Request):
    engine = _engine(request)
    await engine.fetch_week()
    grouped = {d.isoformat(): _dump(items) for d, items in engine.grouped_by_day().items()}
    return JSONResponse({"days": grouped, "error": engine.error})


@router.get("/current")
async def current(request: Request):
    programme = _engine(request).current_programme()
    return JSONResponse({"programme": programme.model_dump(mode="json") if programme else None})


@router.get("/upcoming")
async def upcoming(request: Request):
    return JSONResponse({"programmes": _dump(_engine(request).upcoming_programmes())})
