"""Async SQLite key-value store for preferences, caches and settings.

Uses aiosqlite for non-blocking access.  Every write commits before it
returns, so there is no batching to lose on a crash.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiosqlite

from radiocore.models import PreferenceState, Programme, Track
from radiocore.snapshot import (
    export_programmes,
    export_tracks,
    import_programmes,
    import_tracks,
)

logger = logging.getLogger(__name__)

PREFERENCE_KEY_PREFIX = "track_interaction_"
RECENTLY_PLAYED_KEY = "recently_played_cache"

_PLAY_ON_LAUNCH = "play_on_launch"
_SELECTED_TIMEZONE = "selected_timezone"
_PUSH_NOTIFICATIONS = "push_notifications_enabled"
_SLEEP_TIMER_DURATION = "sleep_timer_duration"
_LAST_STREAM_URL = "last_stream_url"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def schedule_cache_key(day: date) -> str:
    """One slot per day-of-month; the 15th of every month shares a slot."""
    return f"schedule_cache_day_{day.day}"


class LocalStore:
    """Persistent mapping for track preferences, caches and scalar settings."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        *,
        default_timezone: str = "America/Toronto",
        default_stream_url: str = "",
    ):
        self._db = db
        self._default_timezone = default_timezone
        self._default_stream_url = default_stream_url

    async def close(self) -> None:
        await self._db.close()

    # -- raw key/value ------------------------------------------------------

    async def get(self, key: str) -> Optional[str]:
        cursor = await self._db.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        await self._db.execute(
            """
            INSERT INTO kv (key, value) VALUES (?, ?)
            ON CONFLICT(key)
            DO UPDATE SET value      = excluded.value,
                          updated_at = datetime('now')
            """,
            (key, value),
        )
        await self._db.commit()

    # -- preferences --------------------------------------------------------

    async def get_preference(self, track_id: str) -> PreferenceState:
        raw = await self.get(PREFERENCE_KEY_PREFIX + track_id)
        if raw is None:
            return PreferenceState.NONE
        try:
            return PreferenceState(raw)
        except ValueError:
            return PreferenceState.NONE

    async def set_preference(self, track_id: str, state: PreferenceState) -> None:
        await self.set(PREFERENCE_KEY_PREFIX + track_id, state.value)

    # -- recently played cache ----------------------------------------------

    async def get_cached_recently_played(self) -> Optional[List[Track]]:
        raw = await self.get(RECENTLY_PLAYED_KEY)
        if raw is None:
            return None
        try:
            return import_tracks(raw)
        except ValueError:
            logger.warning("Discarding unreadable recently-played cache")
            return None

    async def set_cached_recently_played(self, tracks: Sequence[Track]) -> None:
        await self.set(RECENTLY_PLAYED_KEY, export_tracks(tracks))

    # -- schedule cache -----------------------------------------------------

    async def get_cached_schedule(self, day: date) -> Optional[List[Programme]]:
        raw = await self.get(schedule_cache_key(day))
        if raw is None:
            return None
        try:
            return import_programmes(raw)
        except ValueError:
            logger.warning("Discarding unreadable schedule cache for %s", day)
            return None

    async def set_cached_schedule(self, day: date, programmes: Sequence[Programme]) -> None:
        await self.set(schedule_cache_key(day), export_programmes(programmes))

    # -- scalar settings ----------------------------------------------------

    async def _get_bool(self, key: str) -> bool:
        return (await self.get(key)) == "1"

    async def _set_bool(self, key: str, value: bool) -> None:
        await self.set(key, "1" if value else "0")

    async def get_play_on_launch(self) -> bool:
        return await self._get_bool(_PLAY_ON_LAUNCH)

    async def set_play_on_launch(self, value: bool) -> None:
        await self._set_bool(_PLAY_ON_LAUNCH, value)

    async def get_push_notifications_enabled(self) -> bool:
        return await self._get_bool(_PUSH_NOTIFICATIONS)

    async def set_push_notifications_enabled(self, value: bool) -> None:
        await self._set_bool(_PUSH_NOTIFICATIONS, value)

    async def get_selected_timezone(self) -> str:
        raw = await self.get(_SELECTED_TIMEZONE)
        if raw:
            try:
                ZoneInfo(raw)
                return raw
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning("Ignoring unknown stored timezone %r", raw)
        return self._default_timezone

    async def set_selected_timezone(self, tz_name: str) -> None:
        """Persist an IANA zone name.

        Raises ``ValueError`` for names zoneinfo does not know.
        """
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {tz_name}") from exc
        await self.set(_SELECTED_TIMEZONE, tz_name)

    async def get_sleep_timer_duration(self) -> float:
        raw = await self.get(_SLEEP_TIMER_DURATION)
        try:
            return float(raw) if raw is not None else 0.0
        except ValueError:
            return 0.0

    async def set_sleep_timer_duration(self, seconds: float) -> None:
        await self.set(_SLEEP_TIMER_DURATION, repr(float(seconds)))

    async def get_last_stream_url(self) -> str:
        return (await self.get(_LAST_STREAM_URL)) or self._default_stream_url

    async def set_last_stream_url(self, url: str) -> None:
        await self.set(_LAST_STREAM_URL, url)


# ---------------------------------------------------------------------------
# Lifecycle helpers
# ---------------------------------------------------------------------------

async def open_store(
    db_path: Union[str, Path],
    *,
    default_timezone: str = "America/Toronto",
    default_stream_url: str = "",
) -> LocalStore:
    """Open (or create) the SQLite database and ensure schema exists."""
    db = await aiosqlite.connect(str(db_path))
    await db.executescript(_SCHEMA_SQL)
    await db.commit()
    return LocalStore(
        db,
        default_timezone=default_timezone,
        default_stream_url=default_stream_url,
    )
