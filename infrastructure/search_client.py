"""HTTP client for the photo index server's search endpoints.

Responses are JSON objects with `totalMatches`, `resultCount` and `groups`,
each group holding an `items` list. Groups are flattened in order, so items
keep the order the server produced. Failures are mapped to `SearchError`
subclasses; nothing is retried here.
"""

from __future__ import annotations

from datetime import datetime
import re
from typing import Any

import requests
from loguru import logger

from core.errors import MalformedResponseError, NetworkError, ServerError
from core.models import DayLink, ResultItem, ResultPage, SearchDescriptor
from core.services.request_builder import SearchRequestBuilder

# Fractional seconds of any length; trailing zeros may be trimmed by the server
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")

DEFAULT_TIMEOUT_SECONDS = 30.0


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; return None if absent or invalid."""
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Invalid createdDate: {}", value)
        return None


def _parse_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_day_link(value: Any) -> DayLink | None:
    if not isinstance(value, dict):
        return None
    try:
        return DayLink(month=int(value["month"]), day=int(value["day"]))
    except (KeyError, TypeError, ValueError):
        return None


def parse_item(raw: dict[str, Any]) -> ResultItem:
    """Build a `ResultItem` from one JSON item; all fields go to display_fields."""
    return ResultItem(
        id=str(raw.get("id", "")),
        created_date=_parse_datetime(raw.get("createdDate")),
        latitude=_parse_float(raw.get("latitude")),
        longitude=_parse_float(raw.get("longitude")),
        display_fields=dict(raw),
    )


def parse_page(body: Any) -> ResultPage:
    """Build a `ResultPage` from a decoded response body."""
    if not isinstance(body, dict):
        raise MalformedResponseError("Unexpected response: not a JSON object")
    try:
        total_matches = int(body["totalMatches"])
        result_count = int(body["resultCount"])
    except (KeyError, TypeError, ValueError) as ex:
        raise MalformedResponseError(f"Unexpected response: missing or bad {ex}") from ex

    items: list[ResultItem] = []
    for group in body.get("groups") or []:
        if not isinstance(group, dict):
            raise MalformedResponseError("Unexpected response: group is not an object")
        for raw in group.get("items") or []:
            if not isinstance(raw, dict):
                raise MalformedResponseError("Unexpected response: item is not an object")
            items.append(parse_item(raw))

    return ResultPage(
        items=items,
        total_matches=total_matches,
        result_count=result_count,
        previous_available_by_day=_parse_day_link(body.get("previousAvailableByDay")),
        next_available_by_day=_parse_day_link(body.get("nextAvailableByDay")),
    )


class SearchClient:
    """Fetches one page of search results per call."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        builder: SearchRequestBuilder | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._builder = builder or SearchRequestBuilder()

    def fetch_page(self, descriptor: SearchDescriptor) -> ResultPage:
        """Fetch the page starting at `descriptor.first`.

        Raises:
            NetworkError: No response was received.
            ServerError: The server returned an error status.
            MalformedResponseError: The body is not a result page.
        """
        url = self._base_url + self._builder.endpoint(descriptor)
        params = self._builder.to_query_params(descriptor)
        logger.debug("GET {} first={} count={}", url, params["first"], params["count"])
        try:
            response = self._session.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as ex:
            logger.warning("Request to {} failed: {}", url, ex)
            raise NetworkError() from ex

        if response.status_code >= 400:
            raise self._server_error(response)

        try:
            body = response.json()
        except ValueError as ex:
            raise MalformedResponseError(f"The server returned: {response.text}") from ex
        return parse_page(body)

    def _server_error(self, response: requests.Response) -> ServerError:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and ("errorCode" in body or "errorMessage" in body):
            code = body.get("errorCode", response.status_code)
            message = body.get("errorMessage", "")
            return ServerError(code, f"The server failed with: {code}; {message}")
        return ServerError(response.status_code, f"The server returned: {response.text}")

    def close(self) -> None:
        self._session.close()
