"""Timeline logic. Pure business logic, no I/O.

Provides:
- Calendar-day bucketing of tracks and programmes
- Current / upcoming programme derivation
- Symmetric like/dislike toggling
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from radiocore.models import PreferenceState, Programme, Track

DAY = timedelta(hours=24)


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def local_day(ts_ms: int, tz: tzinfo) -> date:
    """Calendar day (in *tz*) that contains the instant *ts_ms*."""
    return datetime.fromtimestamp(ts_ms / 1000, tz=tz).date()


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_window(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """[start-of-day, start-of-day + 24h) for *day* in *tz*."""
    start = start_of_day(day, tz)
    return start, start.astimezone(timezone.utc) + DAY


def to_ms(moment: datetime) -> int:
    """Whole-second epoch milliseconds, as the grid endpoint expects."""
    return int(moment.timestamp()) * 1000


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

def group_tracks_by_day(
    tracks: Sequence[Track], tz: tzinfo
) -> Iterator[Tuple[date, List[Track]]]:
    """Yield ``(day, tracks)`` pairs, most recent day first.

    Tracks keep their relative order inside a day.
    """
    buckets: "OrderedDict[date, List[Track]]" = OrderedDict()
    for track in tracks:
        buckets.setdefault(local_day(track.ts, tz), []).append(track)
    for day in sorted(buckets, reverse=True):
        yield day, buckets[day]


def group_programmes_by_day(
    programmes: Sequence[Programme], tz: tzinfo
) -> Dict[date, List[Programme]]:
    grouped: Dict[date, List[Programme]] = {}
    for programme in programmes:
        grouped.setdefault(local_day(programme.start_ts, tz), []).append(programme)
    return {
        day: sorted(items, key=lambda p: p.start_ts)
        for day, items in grouped.items()
    }


def programmes_on(
    programmes: Sequence[Programme], day: date, tz: tzinfo
) -> List[Programme]:
    """Programmes whose start falls inside *day*."""
    start, end = day_window(day, tz)
    lo, hi = to_ms(start), to_ms(end)
    return [p for p in programmes if lo <= p.start_ts < hi]


# ---------------------------------------------------------------------------
# Current / next
# ---------------------------------------------------------------------------

def current_programme(
    programmes: Sequence[Programme], at_ms: int
) -> Optional[Programme]:
    """First programme (array order) whose window contains *at_ms*."""
    return next((p for p in programmes if p.is_live_at(at_ms)), None)


def upcoming_programmes(
    programmes: Sequence[Programme], at_ms: int
) -> List[Programme]:
    return sorted(
        (p for p in programmes if p.start_ts > at_ms),
        key=lambda p: p.start_ts,
    )


def current_and_next(
    programmes: Sequence[Programme], at_ms: int, limit: int = 5
) -> Tuple[Optional[Programme], List[Programme]]:
    """Split a day's grid into the live slot and what follows.

    With nothing live, "next" is simply the first *limit* entries.
    """
    live = current_programme(programmes, at_ms)
    if live is None:
        return None, list(programmes[:limit])
    upcoming = [p for p in programmes if not p.is_live_at(at_ms)]
    return live, upcoming[:limit]


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

def toggle_preference(
    current: PreferenceState, target: PreferenceState
) -> PreferenceState:
    """Re-applying the current state clears it; anything else overwrites."""
    if current == target:
        return PreferenceState.NONE
    return target
