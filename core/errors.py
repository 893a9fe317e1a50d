"""Errors raised while fetching result pages from the index server."""

from __future__ import annotations


class SearchError(Exception):
    """Base class for failures that end a search session."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NetworkError(SearchError):
    """No response was received (connection refused, DNS failure, timeout)."""

    def __init__(self, message: str = "Server not accessible") -> None:
        super().__init__(message)


class ServerError(SearchError):
    """The server answered with an error status or a structured error body."""

    def __init__(self, code: int | str, message: str) -> None:
        super().__init__(message)
        self.code = code


class MalformedResponseError(SearchError):
    """The response body could not be read as a result page."""
