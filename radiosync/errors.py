"""Typed failures raised by the station and enrichment clients."""

from __future__ import annotations


class APIError(Exception):
    """Base for every client failure.

    ``status_code`` is the HTTP status where one exists, otherwise 0.
    """

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class InvalidRequestError(APIError):
    """Inputs could not be turned into a request URL."""

    def __init__(self, detail: str = "Invalid URL"):
        super().__init__(0, detail)


class HTTPStatusError(APIError):
    """Non-2xx response, surfaced verbatim."""

    def __init__(self, status_code: int):
        super().__init__(status_code, f"HTTP Error {status_code}")


class ParseError(APIError):
    """Body matched none of the known shapes."""

    def __init__(self, detail: str = "Failed to parse response"):
        super().__init__(0, detail)


class NetworkError(APIError):
    """Connectivity failure before any HTTP status was received."""

    def __init__(self, detail: str):
        super().__init__(0, detail)
