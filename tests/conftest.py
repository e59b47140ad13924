"""Shared fakes: programmable HTTP transport, recording player, temp store."""

from __future__ import annotations

from datetime import timezone
from typing import Any, Optional

import httpx
import pytest

from radiosync.store import open_store

STATION_BASE = "https://station.test/api/v2"
SEARCH_URL = "https://search.test/search"

UTC = timezone.utc


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class MockTransport(httpx.AsyncBaseTransport):
    """Programmable transport returning canned responses per URL path.

    A queued item may be a JSON-able body (served with 200), a ready
    ``httpx.Response`` or an exception instance to raise.
    """

    def __init__(self, routes: dict[str, list]):
        self._routes = routes
        self.calls: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request):
        self.calls.append(request)
        path = request.url.path
        for prefix, responses in self._routes.items():
            if path.startswith(prefix):
                item: Any = responses.pop(0) if responses else {}
                if isinstance(item, BaseException):
                    raise item
                if isinstance(item, httpx.Response):
                    return item
                return httpx.Response(200, json=item)
        return httpx.Response(404, json={"error": "not found"})

    def params(self, index: int = -1) -> dict[str, str]:
        return dict(self.calls[index].url.params)


class _RawStream(httpx.AsyncByteStream):
    """Body bytes served as-is, decoded only when the client reads them."""

    def __init__(self, data: bytes):
        self._data = data

    async def __aiter__(self):
        yield self._data


def corrupt_gzip_response() -> httpx.Response:
    """200 that claims gzip encoding but carries plain bytes."""
    return httpx.Response(
        200,
        headers={"content-encoding": "gzip"},
        stream=_RawStream(b"not-gzip"),
    )


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class FakePlayer:
    """Records every call the engines make against the player."""

    def __init__(self, active: bool = False):
        self.active = active
        self.play_calls = 0
        self.pause_calls = 0
        self.volume: Optional[float] = None
        self.pushes: list[tuple] = []

    @property
    def is_active(self) -> bool:
        return self.active

    def play(self) -> None:
        self.play_calls += 1
        self.active = True

    def pause(self) -> None:
        self.pause_calls += 1
        self.active = False

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def push_now_playing(self, title, artist, album, artwork_url, duration_seconds) -> None:
        self.pushes.append((title, artist, album, artwork_url, duration_seconds))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def store(tmp_path):
    """Fresh SQLite-backed store per test."""
    s = await open_store(
        tmp_path / "test.db",
        default_timezone="America/Toronto",
        default_stream_url="https://stream.test/live",
    )
    yield s
    await s.close()


@pytest.fixture
def player():
    return FakePlayer()
