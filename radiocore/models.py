"""Pydantic models shared across the application."""

from __future__ import annotations

import hashlib
import math
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError, model_validator

# Values below this are taken to be seconds rather than milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def normalize_timestamp(value: Any) -> int:
    """Return *value* as epoch milliseconds.

    Numbers under 10^12 are scaled from seconds.  Anything that is not a
    number (including booleans, NaN and infinities) normalises to 0.
    """
    if not _is_number(value):
        return 0
    ts = int(value)
    if ts < _MS_THRESHOLD:
        ts *= 1000
    return ts


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _opt_id(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _stable_id(*parts: object) -> str:
    """Deterministic id for payloads the server sent without one."""
    digest = hashlib.sha1("\x1f".join(str(p) for p in parts).encode("utf-8"))
    return f"gen-{digest.hexdigest()[:20]}"


# ---------------------------------------------------------------------------
# Preference
# ---------------------------------------------------------------------------

class PreferenceState(str, Enum):
    NONE = "none"
    LIKED = "liked"
    DISLIKED = "disliked"


class ImageContext(str, Enum):
    MINI_PLAYER = "mini_player"
    FULL_SCREEN = "full_screen"
    NOW_PLAYING_CENTER = "now_playing_center"
    LIST_ITEM = "list_item"


# ---------------------------------------------------------------------------
# Track
# ---------------------------------------------------------------------------

class Track(BaseModel):
    """A single song play event from the station history."""

    id: str
    title: str
    artist: str
    album: Optional[str] = None
    ts: int  # ms since epoch, moment it started playing
    length: Optional[int] = None  # ms
    small_image_url: Optional[str] = None
    medium_image_url: Optional[str] = None
    large_image_url: Optional[str] = None

    # Client-only, never server truth.
    preview_url: Optional[str] = None
    preference: PreferenceState = PreferenceState.NONE

    @classmethod
    def from_payload(cls, data: Any) -> Optional["Track"]:
        """Tolerant parse of one history element; ``None`` if unparseable."""
        if not isinstance(data, dict):
            return None

        title = _opt_str(data.get("title")) or "Unknown title"
        artist = _opt_str(data.get("author")) or "Unknown artist"
        ts = normalize_timestamp(data.get("ts"))

        length = data.get("length")
        if not _is_number(length):
            length = None

        track_id = _opt_id(data.get("id")) or _stable_id(artist, title, ts)
        return cls(
            id=track_id,
            title=title,
            artist=artist,
            album=_opt_str(data.get("album")),
            ts=ts,
            length=int(length) if length is not None else None,
            small_image_url=_opt_str(data.get("img_url")),
            medium_image_url=_opt_str(data.get("img_medium_url")),
            large_image_url=_opt_str(data.get("img_large_url")),
        )

    @property
    def start_date(self) -> datetime:
        return datetime.fromtimestamp(self.ts / 1000, tz=timezone.utc)

    @property
    def duration(self) -> float:
        """Duration in seconds, 0 when the server sent no length."""
        if self.length is None:
            return 0.0
        return self.length / 1000

    def preferred_image_url(
        self, context: ImageContext = ImageContext.FULL_SCREEN
    ) -> Optional[str]:
        small, medium, large = (
            self.small_image_url,
            self.medium_image_url,
            self.large_image_url,
        )
        if context == ImageContext.MINI_PLAYER:
            order = (small, medium, large)
        elif context == ImageContext.LIST_ITEM:
            order = (medium, small, large)
        else:
            order = (large, medium, small)
        return next((url for url in order if url), None)


# ---------------------------------------------------------------------------
# Programme
# ---------------------------------------------------------------------------

class ProgrammeFallback(BaseModel):
    """Static metadata used to backfill what the server leaves out."""

    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    host: Optional[str] = None
    genre: Optional[str] = None


_FALLBACK_FIELDS = ("description", "image_url", "host", "genre")


class Programme(BaseModel):
    """A scheduled on-air show with a fixed [start, end) window."""

    id: str
    name: str
    description: Optional[str] = None
    start_ts: int  # ms
    end_ts: int  # ms
    image_url: Optional[str] = None
    host: Optional[str] = None
    genre: Optional[str] = None

    @model_validator(mode="after")
    def _check_window(self) -> "Programme":
        if self.start_ts <= 0:
            raise ValueError("start_ts must be positive")
        if self.end_ts <= self.start_ts:
            raise ValueError("end_ts must be after start_ts")
        return self

    @classmethod
    def from_payload(cls, data: Any) -> Optional["Programme"]:
        """Tolerant parse of one grid element; ``None`` if invalid."""
        if not isinstance(data, dict):
            return None

        name = (
            _opt_str(data.get("name"))
            or _opt_str(data.get("title"))
            or "Unknown Programme"
        )
        start_ts = normalize_timestamp(data.get("start_ts"))
        end_ts = normalize_timestamp(data.get("end_ts"))
        programme_id = _opt_id(data.get("id")) or _stable_id(name, start_ts)

        try:
            return cls(
                id=programme_id,
                name=name,
                description=_opt_str(data.get("description")),
                start_ts=start_ts,
                end_ts=end_ts,
                image_url=_opt_str(data.get("img_url")),
                host=_opt_str(data.get("host")),
                genre=_opt_str(data.get("genre")),
            )
        except ValidationError:
            return None

    @classmethod
    def with_fallback(
        cls,
        data: Any,
        catalogue: Dict[str, ProgrammeFallback],
    ) -> Optional["Programme"]:
        """Parse *data*, then backfill missing optional fields by exact name."""
        programme = cls.from_payload(data)
        if programme is None:
            return None

        fallback = catalogue.get(programme.name)
        if fallback is None:
            return programme

        return programme.model_copy(
            update={
                field: getattr(fallback, field)
                for field in _FALLBACK_FIELDS
                if getattr(programme, field) is None
            }
        )

    @property
    def start_date(self) -> datetime:
        return datetime.fromtimestamp(self.start_ts / 1000, tz=timezone.utc)

    @property
    def end_date(self) -> datetime:
        return datetime.fromtimestamp(self.end_ts / 1000, tz=timezone.utc)

    @property
    def duration(self) -> int:
        """Length of the slot in ms."""
        return self.end_ts - self.start_ts

    def is_live_at(self, at_ms: int) -> bool:
        return self.start_ts <= at_ms < self.end_ts

    @property
    def is_live_now(self) -> bool:
        return self.is_live_at(now_ms())

    def time_remaining(self, at_ms: Optional[int] = None) -> int:
        """Milliseconds left in the slot, never negative."""
        if at_ms is None:
            at_ms = now_ms()
        return max(0, self.end_ts - at_ms)


# Known programmes; server values always take precedence.
LOCAL_PROGRAMME_CATALOGUE: Dict[str, ProgrammeFallback] = {
    "Breakfast Show": ProgrammeFallback(
        name="Breakfast Show",
        description="Wake up with the latest hits, news, and fun.",
        host="Morning Team",
        genre="Pop",
    ),
    "Afternoon Drive": ProgrammeFallback(
        name="Afternoon Drive",
        description="Your afternoon soundtrack on the commute.",
        host="Drive Team",
        genre="Pop",
    ),
}
