"""Minimal JSON-over-HTTP helper shared by the station and enrichment clients.

Features:
  - Request failures (transport, decoding, redirects) mapped to ``NetworkError``
  - Non-2xx mapped to ``HTTPStatusError`` (no retries)
  - Undecodable bodies mapped to ``ParseError``
  - Injectable transport for tests
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from radiosync.errors import HTTPStatusError, InvalidRequestError, NetworkError, ParseError

logger = logging.getLogger(__name__)


def build_url(base: str, params: Mapping[str, Any]) -> httpx.URL:
    try:
        url = httpx.URL(base, params={k: str(v) for k, v in params.items()})
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidRequestError(f"Invalid URL: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidRequestError(f"Invalid URL: {base}")
    return url


async def get_json(
    url: httpx.URL,
    *,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    """GET *url* and return the decoded JSON body."""
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=transport) as client:
        try:
            resp = await client.get(url)
        except httpx.RequestError as exc:
            logger.warning("Request error on GET %s: %s", url.path, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

    if not 200 <= resp.status_code < 300:
        logger.warning("HTTP %d on GET %s", resp.status_code, url.path)
        raise HTTPStatusError(resp.status_code)

    try:
        return resp.json()
    except ValueError as exc:
        raise ParseError() from exc
