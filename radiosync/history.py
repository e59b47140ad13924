"""Recently-played log: paginated, enriched, cached.

The displayed list is append-only within a session apart from in-place
preference edits.  A cached snapshot is surfaced while the first page is
in flight; a failed fetch never blanks what is already shown.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Iterator, List, Optional, Sequence, Tuple

from radiocore.models import PreferenceState, Track
from radiocore.timeline import group_tracks_by_day, toggle_preference
from radiosync.enrichment_client import EnrichmentClient
from radiosync.errors import APIError
from radiosync.station_client import StationClient
from radiosync.store import LocalStore

logger = logging.getLogger(__name__)


class HistoryEngine:
    """Owns the recently-played list and its pagination cursor."""

    def __init__(
        self,
        station: StationClient,
        enrichment: EnrichmentClient,
        store: LocalStore,
        *,
        tz: tzinfo,
        page_size: int = 50,
    ):
        self._station = station
        self._enrichment = enrichment
        self._store = store
        self.tz = tz
        self.page_size = page_size

        self.tracks: List[Track] = []
        self.offset = 0
        self.has_more = True
        self.is_loading = False
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_initial(self) -> None:
        """Reload from the top, showing the cached snapshot meanwhile."""
        if self.is_loading:
            return
        self.is_loading = True
        self.error = None
        self.offset = 0
        self.has_more = True

        try:
            cached = await self._store.get_cached_recently_played()
            if cached is not None:
                await self._join_preferences(cached)
                self.tracks = cached

            try:
                page = await self._station.fetch_history(self.page_size, 0)
            except APIError as exc:
                logger.warning("History load failed: %s", exc)
                self.error = str(exc)
                return

            await self._enrich(page)
            self.tracks = page
            await self._store.set_cached_recently_played(page)
            self.offset = len(page)
            self.has_more = len(page) == self.page_size
        finally:
            self.is_loading = False

    async def load_more(self) -> None:
        """Append the next page; no-op at the end or while a load runs."""
        if not self.has_more or self.is_loading:
            return
        self.is_loading = True
        self.error = None

        try:
            try:
                page = await self._station.fetch_history(self.page_size, self.offset)
            except APIError as exc:
                logger.warning("History page at offset %d failed: %s", self.offset, exc)
                self.error = str(exc)
                return

            await self._enrich(page)
            self.tracks.extend(page)
            self.offset += len(page)
            # A short page is the only end-of-history signal.
            self.has_more = len(page) == self.page_size
        finally:
            self.is_loading = False

    async def _join_preferences(self, tracks: Sequence[Track]) -> None:
        for track in tracks:
            track.preference = await self._store.get_preference(track.id)

    async def _enrich(self, page: Sequence[Track]) -> None:
        await self._join_preferences(page)
        previews = await self._enrichment.search_previews_batch(page)
        for track in page:
            track.preview_url = previews.get(track.id)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def grouped_by_day(self) -> Iterator[Tuple[date, List[Track]]]:
        return group_tracks_by_day(list(self.tracks), self.tz)

    def find(self, track_id: str) -> Optional[Track]:
        return next((t for t in self.tracks if t.id == track_id), None)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def toggle_preference(
        self, track_id: str, target: PreferenceState
    ) -> PreferenceState:
        """Apply *target* to a track; applying it twice clears it."""
        track = self.find(track_id)
        if track is not None:
            current = track.preference
        else:
            current = await self._store.get_preference(track_id)

        new_state = toggle_preference(current, target)
        await self._store.set_preference(track_id, new_state)
        if track is not None:
            track.preference = new_state
        return new_state

    async def toggle_like(self, track_id: str) -> PreferenceState:
        return await self.toggle_preference(track_id, PreferenceState.LIKED)

    async def toggle_dislike(self, track_id: str) -> PreferenceState:
        return await self.toggle_preference(track_id, PreferenceState.DISLIKED)
