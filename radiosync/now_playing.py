"""Now-playing refresh loop, sleep timer and current/next programmes.

The poll loop only talks to the station while the player is active.  The
sleep timer is a one-shot task guarded by a generation counter that is
re-checked right before it pauses the player, so a cancel that lands first
always wins.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from radiocore.models import ImageContext, PreferenceState, Programme, Track, now_ms
from radiocore.timeline import current_and_next, day_window, toggle_preference
from radiosync.enrichment_client import EnrichmentClient
from radiosync.errors import APIError
from radiosync.player import Player
from radiosync.station_client import StationClient
from radiosync.store import LocalStore

logger = logging.getLogger(__name__)


class SleepTimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FIRED = "fired"
    CANCELLED = "cancelled"


class NowPlayingEngine:
    """Live "what's playing" signal; the only engine that drives the player."""

    def __init__(
        self,
        station: StationClient,
        enrichment: EnrichmentClient,
        store: LocalStore,
        player: Player,
        *,
        tz: tzinfo,
        poll_interval: float = 10.0,
        now_playing_limit: int = 8,
        next_count: int = 5,
        clock: Callable[[], int] = now_ms,
    ):
        self._station = station
        self._enrichment = enrichment
        self._store = store
        self.player = player
        self.tz = tz
        self.poll_interval = poll_interval
        self.now_playing_limit = now_playing_limit
        self.next_count = next_count
        self._clock = clock

        self.now_playing_track: Optional[Track] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self.current_programme: Optional[Programme] = None
        self.next_programmes: List[Programme] = []

        self.sleep_timer_duration = 0.0
        self.sleep_timer_state = SleepTimerState.IDLE
        self.last_sleep_outcome: Optional[SleepTimerState] = None
        self._sleep_generation = 0
        self._sleep_task: Optional[asyncio.Task] = None
        self._sleep_deadline: Optional[float] = None

        self._poll_task: Optional[asyncio.Task] = None

    async def restore(self) -> None:
        """Load the last chosen sleep-timer duration."""
        self.sleep_timer_duration = await self._store.get_sleep_timer_duration()

    # ------------------------------------------------------------------
    # Playback control
    # ------------------------------------------------------------------

    async def play(self) -> None:
        self.player.play()
        await self._store.set_play_on_launch(True)

    def pause(self) -> None:
        self.player.pause()

    async def toggle_play_pause(self) -> None:
        if self.player.is_active:
            self.pause()
        else:
            await self.play()

    def set_volume(self, volume: float) -> None:
        self.player.set_volume(max(0.0, min(1.0, volume)))

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        """Start the background polling task."""
        if self._poll_task and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop_polling(self) -> None:
        if self._poll_task and not self._poll_task.done():
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
        self._poll_task = None

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.poll_interval)
                await self.refresh_now_playing()
            except asyncio.CancelledError:
                logger.info("Now-playing polling cancelled")
                return
            except Exception:
                # One bad tick must not end the loop.
                logger.exception("Now-playing poll error")

    async def refresh_now_playing(self) -> None:
        """Single poll cycle: newest history entry becomes now playing."""
        if not self.player.is_active or self.is_loading:
            return

        self.is_loading = True
        self.error = None
        try:
            try:
                tracks = await self._station.fetch_history(self.now_playing_limit, 0)
            except APIError as exc:
                logger.warning("Now-playing refresh failed: %s", exc)
                self.error = str(exc)
                return

            if not tracks:
                return

            track = tracks[0]
            track.preference = await self._store.get_preference(track.id)
            try:
                track.preview_url = await self._enrichment.search_preview(
                    track.artist, track.title
                )
            except APIError as exc:
                logger.debug("No preview for now-playing %s: %s", track.id, exc)

            self.now_playing_track = track
            self.player.push_now_playing(
                track.title,
                track.artist,
                track.album or "",
                track.preferred_image_url(ImageContext.NOW_PLAYING_CENTER),
                track.duration,
            )
        finally:
            self.is_loading = False

    async def toggle_preference(self, target: PreferenceState) -> Optional[PreferenceState]:
        """Toggle like/dislike on the now-playing track, if there is one."""
        track = self.now_playing_track
        if track is None:
            return None
        new_state = toggle_preference(track.preference, target)
        await self._store.set_preference(track.id, new_state)
        track.preference = new_state
        return new_state

    # ------------------------------------------------------------------
    # Sleep timer
    # ------------------------------------------------------------------

    async def start_sleep_timer(self, duration: float) -> None:
        """Pause playback after *duration* seconds, replacing any pending timer."""
        if duration <= 0:
            raise ValueError("Sleep timer duration must be positive")

        self.sleep_timer_duration = duration
        self._cancel_sleep_task()
        self._sleep_generation += 1
        self.sleep_timer_state = SleepTimerState.RUNNING
        loop = asyncio.get_running_loop()
        self._sleep_deadline = loop.time() + duration
        self._sleep_task = asyncio.create_task(
            self._sleep_then_pause(duration, self._sleep_generation)
        )
        logger.info("Sleep timer set for %.0fs", duration)
        # The timer is armed before the write; a cancel during it stands.
        await self._store.set_sleep_timer_duration(duration)

    def cancel_sleep_timer(self) -> None:
        was_running = self.sleep_timer_state == SleepTimerState.RUNNING
        self._sleep_generation += 1
        self._cancel_sleep_task()
        self.sleep_timer_state = SleepTimerState.IDLE
        self._sleep_deadline = None
        if was_running:
            self.last_sleep_outcome = SleepTimerState.CANCELLED
            logger.info("Sleep timer cancelled")

    @property
    def sleep_timer_remaining(self) -> float:
        if self.sleep_timer_state != SleepTimerState.RUNNING or self._sleep_deadline is None:
            return 0.0
        return max(0.0, self._sleep_deadline - asyncio.get_running_loop().time())

    def _cancel_sleep_task(self) -> None:
        if self._sleep_task and not self._sleep_task.done():
            self._sleep_task.cancel()
        self._sleep_task = None

    async def _sleep_then_pause(self, duration: float, generation: int) -> None:
        try:
            await asyncio.sleep(duration)
        except asyncio.CancelledError:
            return

        # Re-check at fire time: a cancel or restart may have happened.
        if generation != self._sleep_generation:
            return
        if self.sleep_timer_state != SleepTimerState.RUNNING:
            return

        self.player.pause()
        self.sleep_timer_state = SleepTimerState.IDLE
        self.last_sleep_outcome = SleepTimerState.FIRED
        self._sleep_deadline = None
        logger.info("Sleep timer fired, playback paused")

    # ------------------------------------------------------------------
    # Current / next programmes
    # ------------------------------------------------------------------

    async def fetch_current_and_next(self) -> None:
        """Load the rest of today's grid and split off the live programme."""
        at = self._clock()
        now = datetime.fromtimestamp(at / 1000, tz=self.tz)
        _, end_of_day = day_window(now.date(), self.tz)

        try:
            programmes = await self._station.fetch_schedule(now, end_of_day)
        except APIError as exc:
            logger.warning("Current/next programme fetch failed: %s", exc)
            self.error = str(exc)
            return

        self.current_programme, self.next_programmes = current_and_next(
            programmes, at, self.next_count
        )

    def to_status_dict(self) -> Dict[str, Any]:
        """Serialize for the status API."""
        track = self.now_playing_track
        return {
            "is_active": self.player.is_active,
            "track": track.model_dump(mode="json") if track else None,
            "is_loading": self.is_loading,
            "error": self.error,
            "sleep_timer": {
                "state": self.sleep_timer_state.value,
                "duration": self.sleep_timer_duration,
                "remaining": self.sleep_timer_remaining,
                "last_outcome": self.last_sleep_outcome.value if self.last_sleep_outcome else None,
            },
        }
