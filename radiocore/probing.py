"""Shape probing for station payloads whose layout varies per deployment.

A response body may be a bare JSON array or an object that wraps the
array under one of several keys.  Each known shape is an extraction
strategy; strategies are tried in order and the first that yields a list
wins.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

Strategy = Callable[[Any], Optional[List[Any]]]

SCHEDULE_KEYS = ("grid", "schedule", "programmes", "items", "data", "results")
HISTORY_KEYS = ("history", "results", "items", "data", "tracks", "songs")


def bare_array(payload: Any) -> Optional[List[Any]]:
    return payload if isinstance(payload, list) else None


def wrapped_under(key: str) -> Strategy:
    def _extract(payload: Any) -> Optional[List[Any]]:
        if not isinstance(payload, dict):
            return None
        value = payload.get(key)
        return value if isinstance(value, list) else None

    _extract.__name__ = f"wrapped_under_{key}"
    return _extract


def strategies_for(keys: Sequence[str]) -> List[Strategy]:
    """Bare array first, then each wrapper key in priority order."""
    return [bare_array, *(wrapped_under(k) for k in keys)]


def extract_array(payload: Any, strategies: Sequence[Strategy]) -> Optional[List[Any]]:
    """Return the first list any strategy finds, or ``None``."""
    for strategy in strategies:
        found = strategy(payload)
        if found is not None:
            return found
    return None
