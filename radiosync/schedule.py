"""Programme grid with per-day caching and sequential weekly prefetch."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, Dict, List, Optional

from radiocore.models import Programme, now_ms
from radiocore.timeline import (
    current_programme,
    day_window,
    group_programmes_by_day,
    programmes_on,
    upcoming_programmes,
)
from radiosync.errors import APIError
from radiosync.station_client import StationClient
from radiosync.store import LocalStore

logger = logging.getLogger(__name__)


class ScheduleEngine:
    """Owns the programme set most recently loaded for a day."""

    def __init__(
        self,
        station: StationClient,
        store: LocalStore,
        *,
        tz: tzinfo,
        days_to_fetch: int = 7,
        clock: Callable[[], int] = now_ms,
    ):
        self._station = station
        self._store = store
        self.tz = tz
        self.days_to_fetch = days_to_fetch
        self._clock = clock

        self.programmes: List[Programme] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.selected_day: date = self.today()

    def today(self) -> date:
        return datetime.fromtimestamp(self._clock() / 1000, tz=self.tz).date()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_for_day(self, day: date) -> None:
        """Load *day* from cache, or from the station on a cache miss.

        The loaded day replaces the in-memory set rather than merging.
        """
        self.is_loading = True
        self.error = None
        try:
            cached = await self._store.get_cached_schedule(day)
            if cached is not None:
                self.programmes = cached
                return

            start, end = day_window(day, self.tz)
            try:
                fetched = await self._station.fetch_schedule(start, end)
            except APIError as exc:
                logger.warning("Schedule fetch for %s failed: %s", day, exc)
                self.error = str(exc)
                return

            self.programmes = sorted(fetched, key=lambda p: p.start_ts)
            await self._store.set_cached_schedule(day, self.programmes)
        finally:
            self.is_loading = False

    async def fetch_week(self) -> None:
        """Fetch today and the following days one after another."""
        today = self.today()
        for i in range(self.days_to_fetch):
            await self.fetch_for_day(today + timedelta(days=i))

    async def select_day(self, day: date) -> None:
        self.selected_day = day
        await self.fetch_for_day(day)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def current_programme(self) -> Optional[Programme]:
        return current_programme(self.programmes, self._clock())

    def upcoming_programmes(self) -> List[Programme]:
        return upcoming_programmes(self.programmes, self._clock())

    def programmes_for_today(self) -> List[Programme]:
        return programmes_on(self.programmes, self.today(), self.tz)

    def grouped_by_day(self) -> Dict[date, List[Programme]]:
        return group_programmes_by_day(self.programmes, self.tz)
