"""Best-effort preview lookup against a public song search API.

Enrichment is cosmetic: the batch call never fails, it only leaves out
tracks it could not resolve.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from radiocore.models import Track
from radiosync.errors import APIError, InvalidRequestError, ParseError
from radiosync.http import build_url, get_json

logger = logging.getLogger(__name__)

_SEARCH_LIMIT = 1


class EnrichmentClient:
    """Attach a playable preview URL to tracks."""

    def __init__(
        self,
        search_url: str,
        *,
        timeout: float = 10.0,
        concurrency: int = 4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.search_url = search_url
        self._timeout = timeout
        self._concurrency = max(1, concurrency)
        self._transport = transport

    async def search_preview(self, artist: str, title: str) -> Optional[str]:
        """Return the first result's preview URL, or ``None`` if there is none."""
        term = f"{artist} {title}".strip()
        if not term:
            raise InvalidRequestError("Empty search term")

        url = build_url(
            self.search_url,
            {"term": term, "entity": "song", "limit": _SEARCH_LIMIT},
        )
        payload = await get_json(url, timeout=self._timeout, transport=self._transport)
        return _parse_preview_url(payload)

    async def search_previews_batch(self, tracks: Sequence[Track]) -> Dict[str, str]:
        """Map track id to preview URL for every track that resolved."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(track: Track) -> Optional[str]:
            async with semaphore:
                try:
                    return await self.search_preview(track.artist, track.title)
                except APIError as exc:
                    logger.debug("No preview for %s: %s", track.id, exc)
                    return None

        found = await asyncio.gather(*(_one(t) for t in tracks))
        return {t.id: url for t, url in zip(tracks, found) if url}


def _parse_preview_url(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        raise ParseError("Failed to parse search response")
    results = payload.get("results")
    if not isinstance(results, list):
        raise ParseError("Failed to parse search response")
    if not results or not isinstance(results[0], dict):
        return None
    preview = results[0].get("previewUrl")
    return preview if isinstance(preview, str) and preview else None
