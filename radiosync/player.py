"""Boundary to the audio transport.

The engines only need the operations in ``Player``; opening and buffering
the stream is somebody else's job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Player(Protocol):
    @property
    def is_active(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def push_now_playing(
        self,
        title: str,
        artist: str,
        album: str,
        artwork_url: Optional[str],
        duration_seconds: float,
    ) -> None: ...


class HeadlessPlayer:
    """In-memory player used when no real audio output is attached.

    Tracks play/pause state and volume and keeps the last metadata push so
    the service surface can report it.
    """

    def __init__(self, stream_url: str = ""):
        self.stream_url = stream_url
        self.volume = 0.5
        self.now_playing: Optional[Dict[str, Any]] = None
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def play(self) -> None:
        self._active = True
        logger.info("Playback started (%s)", self.stream_url or "no stream")

    def pause(self) -> None:
        self._active = False
        logger.info("Playback paused")

    def set_volume(self, volume: float) -> None:
        self.volume = max(0.0, min(1.0, volume))

    def push_now_playing(
        self,
        title: str,
        artist: str,
        album: str,
        artwork_url: Optional[str],
        duration_seconds: float,
    ) -> None:
        self.now_playing = {
            "title": title,
            "artist": artist,
            "album": album,
            "artwork_url": artwork_url,
            "duration_seconds": duration_seconds,
            "is_live_stream": True,
        }

