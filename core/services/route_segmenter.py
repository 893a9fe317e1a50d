"""Partition a chronological stream of geotagged items into daily routes.

Items must be folded in the order the server returned them. A new route starts
whenever the display date changes. An item at exactly the same coordinates as
the previous one is ignored, so a burst of photos from one spot neither pads
the active route nor splits it. Only the immediately previous item is
compared; returning later to an earlier spot adds a point as usual.
"""

from __future__ import annotations

from loguru import logger

from core.models import ResultItem, Route, RouteMap
from core.services.date_displayer import DateDisplayer

UNKNOWN_DATE_KEY = "unknown"


class RouteSegmenter:
    """Builds `Route`s from items folded one at a time."""

    def __init__(self, displayer: DateDisplayer | None = None) -> None:
        self._displayer = displayer or DateDisplayer()
        self._routes = RouteMap()
        self._active: list[tuple[float, float]] = []
        self._last_item: ResultItem | None = None

    def reset(self) -> None:
        """Drop all routes and the in-progress segment."""
        self._routes = RouteMap()
        self._active = []
        self._last_item = None

    @property
    def routes(self) -> RouteMap:
        return self._routes

    @property
    def active_points(self) -> list[tuple[float, float]]:
        """Points of the segment not yet committed."""
        return list(self._active)

    @property
    def last_item(self) -> ResultItem | None:
        return self._last_item

    def _date_key(self, item: ResultItem) -> str | None:
        return self._displayer.display_date(item)

    def fold_item(self, item: ResultItem) -> None:
        """Add one item to the segmentation."""
        if not item.has_location:
            return

        is_new_route = self._last_item is None
        if self._last_item is not None:
            is_new_route = self._date_key(item) != self._date_key(self._last_item)
            if (
                self._last_item.latitude == item.latitude
                and self._last_item.longitude == item.longitude
            ):
                return

        if is_new_route:
            self._commit_active(item)

        self._active.append((item.latitude, item.longitude))  # type: ignore[arg-type]
        self._last_item = item

    def finalize(self) -> RouteMap:
        """Commit whatever remains of the active segment and return all routes."""
        if self._last_item is not None:
            self._commit_active(self._last_item)
        return self._routes

    def _commit_active(self, trigger: ResultItem) -> None:
        if len(self._active) > 1:
            source = self._last_item if self._last_item is not None else trigger
            key = self._date_key(source) or UNKNOWN_DATE_KEY
            self._routes.commit(Route(key=key, points=list(self._active)))
            logger.debug("Committed route {} with {} points", key, len(self._active))
        self._active = []
