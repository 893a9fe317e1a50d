"""Translate search descriptors to and from server queries and link parameters.

Endpoint paths and query parameter names are the index server's wire
contract; descriptor fields are passed through unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from loguru import logger

from core.models import (
    ByDayCriteria,
    NearbyCriteria,
    SearchDescriptor,
    SearchKind,
    TextCriteria,
)

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

ENDPOINTS: dict[SearchKind, str] = {
    SearchKind.TEXT: "/api/search",
    SearchKind.BY_DAY: "/api/by-day",
    SearchKind.NEARBY: "/api/nearby",
}

CATEGORIES: dict[SearchKind, str] = {
    SearchKind.TEXT: "keywords,placename,date",
    SearchKind.BY_DAY: "keywords,placename,year",
    SearchKind.NEARBY: "keywords,date",
}


class SearchRequestBuilder:
    """Builds query parameters, link parameters and readable summaries."""

    def __init__(self, today: Callable[[], date] | None = None) -> None:
        self._today = today or date.today

    def endpoint(self, descriptor: SearchDescriptor) -> str:
        return ENDPOINTS[descriptor.kind]

    def to_query_params(self, descriptor: SearchDescriptor) -> dict[str, str]:
        """Query parameters for fetching the page at `descriptor.first`."""
        params: dict[str, str] = {}
        criteria = descriptor.criteria
        if isinstance(criteria, TextCriteria):
            params["q"] = criteria.text
        elif isinstance(criteria, ByDayCriteria):
            params["month"] = str(criteria.month)
            params["day"] = str(criteria.day)
        elif isinstance(criteria, NearbyCriteria):
            params["lat"] = repr(float(criteria.latitude))
            params["lon"] = repr(float(criteria.longitude))
            if criteria.max_kilometers is not None:
                params["maxKilometers"] = repr(float(criteria.max_kilometers))

        params["first"] = str(descriptor.first)
        params["count"] = str(descriptor.page_size)
        params["properties"] = ",".join(descriptor.properties)
        params["categories"] = CATEGORIES[descriptor.kind]
        if descriptor.drilldown:
            params["drilldown"] = descriptor.drilldown
        if descriptor.kind is SearchKind.BY_DAY and descriptor.random:
            params["random"] = "true"
        return params

    def to_link_params(self, descriptor: SearchDescriptor) -> dict[str, Any]:
        """Compact parameters identifying the search, for links and history."""
        params: dict[str, Any] = {"t": descriptor.kind.value}
        criteria = descriptor.criteria
        if isinstance(criteria, TextCriteria):
            params["q"] = criteria.text
        elif isinstance(criteria, ByDayCriteria):
            params["m"] = criteria.month
            params["d"] = criteria.day
        elif isinstance(criteria, NearbyCriteria):
            params["lat"] = criteria.latitude
            params["lon"] = criteria.longitude
        return params

    def from_link_params(
        self,
        params: Mapping[str, Any],
        page_size: int,
        properties: tuple[str, ...] | list[str],
        default_kind: SearchKind = SearchKind.TEXT,
    ) -> SearchDescriptor:
        """Rebuild a descriptor from link parameters.

        `i` (first item) wins over `p` (page number). By-day searches default
        to today; nearby searches default to 0,0.
        """
        kind = default_kind
        if "t" in params:
            kind = SearchKind(str(params["t"]))

        page_number = _to_int(params.get("p"), 1)
        if page_number < 1:
            page_number = 1
        if "i" in params:
            first = max(1, _to_int(params.get("i"), 1))
        else:
            first = 1 + (page_number - 1) * page_size

        criteria: TextCriteria | ByDayCriteria | NearbyCriteria
        if kind is SearchKind.BY_DAY:
            today = self._today()
            month, day = today.month, today.day
            if "m" in params and "d" in params:
                month = _to_int(params["m"], month)
                day = _to_int(params["d"], day)
            criteria = ByDayCriteria(month=month, day=day)
        elif kind is SearchKind.NEARBY:
            lat, lon = 0.0, 0.0
            if "lat" in params and "lon" in params:
                lat = float(params["lat"])
                lon = float(params["lon"])
            criteria = NearbyCriteria(latitude=lat, longitude=lon)
        else:
            criteria = TextCriteria(text=str(params.get("q") or ""))

        return SearchDescriptor(
            kind=kind,
            criteria=criteria,
            properties=tuple(properties),
            page_size=page_size,
            first=first,
        )

    def to_readable_string(self, descriptor: SearchDescriptor) -> str:
        criteria = descriptor.criteria
        if isinstance(criteria, TextCriteria):
            if not criteria.text:
                return "all photos"
            return f"'{criteria.text}'"
        if isinstance(criteria, ByDayCriteria):
            return f"{MONTH_NAMES[criteria.month - 1]} {criteria.day}"
        return f"near {criteria.latitude:.5f}, {criteria.longitude:.5f}"


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        if value is not None:
            logger.warning("Ignoring unparsable link parameter {!r}", value)
        return default
