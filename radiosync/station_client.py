"""Station API client: schedule grid and play history.

Functions:
- fetch_schedule: programmes in a [start, end) window
- fetch_history: one limit/offset page of play events

The response shape differs between deployments, so both parsers probe a
list of known shapes rather than binding to one schema.  Elements that do
not parse are dropped without being reported.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from radiocore.models import LOCAL_PROGRAMME_CATALOGUE, Programme, ProgrammeFallback, Track
from radiocore.probing import HISTORY_KEYS, SCHEDULE_KEYS, extract_array, strategies_for
from radiocore.timeline import to_ms
from radiosync.errors import InvalidRequestError, ParseError
from radiosync.http import build_url, get_json

logger = logging.getLogger(__name__)

_SERVER_PARAM = "1"

_SCHEDULE_STRATEGIES = strategies_for(SCHEDULE_KEYS)
_HISTORY_STRATEGIES = strategies_for(HISTORY_KEYS)


class StationClient:
    """Typed client for the station's ``/grid/`` and ``/history/`` endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        catalogue: Optional[Dict[str, ProgrammeFallback]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._catalogue = LOCAL_PROGRAMME_CATALOGUE if catalogue is None else catalogue
        self._transport = transport

    # ------------------------------------------------------------------
    # Schedule grid
    # ------------------------------------------------------------------

    async def fetch_schedule(self, start: datetime, end: datetime) -> List[Programme]:
        """Fetch the programme grid between *start* and *end*.

        Raises
        ------
        InvalidRequestError
            If the window is empty or the URL cannot be built.
        HTTPStatusError, ParseError, NetworkError
            Propagated from the request.
        """
        start_ts, end_ts = to_ms(start), to_ms(end)
        if end_ts <= start_ts:
            raise InvalidRequestError("Schedule window must end after it starts")

        url = build_url(
            f"{self.base_url}/grid/",
            {
                "start_ts": start_ts,
                "end_ts": end_ts,
                "server": _SERVER_PARAM,
                "utc": "1",
            },
        )
        payload = await get_json(url, timeout=self._timeout, transport=self._transport)
        return self.parse_schedule(payload)

    def parse_schedule(self, payload: Any) -> List[Programme]:
        items = extract_array(payload, _SCHEDULE_STRATEGIES)
        if items is None:
            raise ParseError()
        programmes = []
        for item in items:
            programme = Programme.with_fallback(item, self._catalogue)
            if programme is not None:
                programmes.append(programme)
        if len(programmes) < len(items):
            logger.debug("Dropped %d invalid grid entries", len(items) - len(programmes))
        return programmes

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def fetch_history(self, limit: int, offset: int) -> List[Track]:
        """Fetch one page of play history, newest first."""
        if limit < 1 or offset < 0:
            raise InvalidRequestError(f"Invalid page limit={limit} offset={offset}")

        url = build_url(
            f"{self.base_url}/history/",
            {"limit": limit, "offset": offset, "server": _SERVER_PARAM},
        )
        payload = await get_json(url, timeout=self._timeout, transport=self._transport)
        return self.parse_history(payload)

    def parse_history(self, payload: Any) -> List[Track]:
        items = extract_array(payload, _HISTORY_STRATEGIES)
        if items is None:
            raise ParseError()
        return [t for t in (Track.from_payload(item) for item in items) if t is not None]
