"""Cache snapshots: lists of tracks / programmes as JSON blobs."""

from __future__ import annotations

import json
from typing import List, Sequence

from pydantic import TypeAdapter, ValidationError

from radiocore.models import Programme, Track

_tracks = TypeAdapter(List[Track])
_programmes = TypeAdapter(List[Programme])


def export_tracks(tracks: Sequence[Track]) -> str:
    """Serialize enriched tracks, client-only fields included."""
    return _tracks.dump_json(list(tracks)).decode("utf-8")


def import_tracks(raw_json: str) -> List[Track]:
    """Parse a track snapshot.

    Raises ``ValueError`` if the JSON is invalid or does not describe tracks.
    """
    try:
        data = json.loads(raw_json)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc
    try:
        return _tracks.validate_python(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid track snapshot: {exc}") from exc


def export_programmes(programmes: Sequence[Programme]) -> str:
    return _programmes.dump_json(list(programmes)).decode("utf-8")


def import_programmes(raw_json: str) -> List[Programme]:
    """Parse a programme snapshot; invalid windows are rejected as a whole.

    Raises ``ValueError`` on malformed input.
    """
    try:
        data = json.loads(raw_json)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc
    try:
        return _programmes.validate_python(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid programme snapshot: {exc}") from exc
