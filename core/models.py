"""Core domain models for search descriptors, result pages and map aggregates."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from loguru import logger


class SearchKind(str, Enum):
    """Kind of search; values are the codes used in links (`t=`)."""

    TEXT = "s"
    BY_DAY = "d"
    NEARBY = "l"


@dataclass(frozen=True)
class TextCriteria:
    text: str


@dataclass(frozen=True)
class ByDayCriteria:
    month: int
    day: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")
        if not 1 <= self.day <= 31:
            raise ValueError(f"day out of range: {self.day}")


@dataclass(frozen=True)
class NearbyCriteria:
    latitude: float
    longitude: float
    max_kilometers: float | None = None


Criteria = Union[TextCriteria, ByDayCriteria, NearbyCriteria]

_CRITERIA_FOR_KIND: dict[SearchKind, type] = {
    SearchKind.TEXT: TextCriteria,
    SearchKind.BY_DAY: ByDayCriteria,
    SearchKind.NEARBY: NearbyCriteria,
}


@dataclass
class SearchDescriptor:
    """What to ask the server for, plus the paging cursor.

    Everything except `first` is fixed for the lifetime of a session; `first`
    is the 1-based index of the first result wanted by the next fetch.
    """

    kind: SearchKind
    criteria: Criteria
    properties: tuple[str, ...] = ()
    page_size: int = 100
    first: int = 1
    # Opaque filter string passed through to the server
    drilldown: str = ""
    random: bool = False

    def __post_init__(self) -> None:
        expected = _CRITERIA_FOR_KIND[self.kind]
        if not isinstance(self.criteria, expected):
            raise ValueError(
                f"{self.kind.name} search needs {expected.__name__}, got {type(self.criteria).__name__}"
            )
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive: {self.page_size}")
        if self.first < 1:
            raise ValueError(f"first must be >= 1: {self.first}")
        self.properties = tuple(self.properties)

    def copy(self) -> SearchDescriptor:
        """Return a detached copy (the cursor is not shared)."""
        return SearchDescriptor(
            kind=self.kind,
            criteria=self.criteria,
            properties=self.properties,
            page_size=self.page_size,
            first=self.first,
            drilldown=self.drilldown,
            random=self.random,
        )


@dataclass
class ResultItem:
    """A single matched photo as returned by the index server."""

    id: str
    created_date: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    display_fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (self.latitude is None) != (self.longitude is None):
            logger.warning("Item {} has a partial location; ignoring it", self.id)
            self.latitude = None
            self.longitude = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def lat_lon(self) -> tuple[float, float] | None:
        if not self.has_location:
            return None
        return (self.latitude, self.longitude)  # type: ignore[return-value]


@dataclass(frozen=True)
class DayLink:
    """Nearest month/day with matches, returned by by-day searches."""

    month: int
    day: int


@dataclass
class ResultPage:
    """One server response for a descriptor at a given cursor."""

    items: list[ResultItem]
    total_matches: int
    result_count: int
    previous_available_by_day: DayLink | None = None
    next_available_by_day: DayLink | None = None


@dataclass
class GeoBounds:
    """Smallest rectangle enclosing every location folded into it.

    Starts inverted so the first folded point sets both corners.
    """

    south_west: tuple[float, float] = (90.0, 180.0)
    north_east: tuple[float, float] = (-90.0, -180.0)

    @property
    def is_empty(self) -> bool:
        return self.south_west[0] > self.north_east[0]

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.south_west[0] <= latitude <= self.north_east[0]
            and self.south_west[1] <= longitude <= self.north_east[1]
        )

    def copy(self) -> GeoBounds:
        return GeoBounds(south_west=self.south_west, north_east=self.north_east)


@dataclass
class Route:
    """A connected run of locations sharing one display date."""

    key: str
    points: list[tuple[float, float]] = field(default_factory=list)


class RouteMap:
    """Mapping of display-date key to the most recently committed route.

    Committing a route whose key already exists replaces the earlier route
    (last write wins); the key keeps its original position in iteration order.
    """

    def __init__(self) -> None:
        self._routes: dict[str, Route] = {}

    def commit(self, route: Route) -> Route | None:
        """Store `route` under its key and return the route it replaced, if any."""
        if len(route.points) < 2:
            raise ValueError(f"route {route.key!r} needs at least two points")
        replaced = self._routes.get(route.key)
        if replaced is not None:
            logger.debug("Route {} replaced ({} -> {} points)", route.key, len(replaced.points), len(route.points))
        self._routes[route.key] = route
        return replaced

    def get(self, key: str) -> Route | None:
        return self._routes.get(key)

    def keys(self) -> list[str]:
        return list(self._routes.keys())

    def values(self) -> list[Route]:
        return list(self._routes.values())

    def clear(self) -> None:
        self._routes.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._routes

    def __getitem__(self, key: str) -> Route:
        return self._routes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._routes))

    def __len__(self) -> int:
        return len(self._routes)


@dataclass(frozen=True)
class Marker:
    """A geotagged item with its 1-based position in the full result list."""

    index: int
    item: ResultItem
