"""Running geographic bounds over the items of one search session."""

from __future__ import annotations

from core.models import GeoBounds, ResultItem


class BoundsTracker:
    """Accumulates the smallest rectangle enclosing every geotagged item.

    Folding only ever widens the rectangle; there is no removal and no
    re-centering. The result does not depend on folding order.
    """

    def __init__(self) -> None:
        self._bounds = GeoBounds()

    def reset(self) -> None:
        self._bounds = GeoBounds()

    def fold(self, item: ResultItem) -> bool:
        """Widen the bounds to enclose `item`.

        Returns False (and changes nothing) when the item has no location.
        """
        if not item.has_location:
            return False

        lat, lon = item.latitude, item.longitude
        sw_lat, sw_lon = self._bounds.south_west
        ne_lat, ne_lon = self._bounds.north_east
        self._bounds.south_west = (min(sw_lat, lat), min(sw_lon, lon))
        self._bounds.north_east = (max(ne_lat, lat), max(ne_lon, lon))
        return True

    @property
    def bounds(self) -> GeoBounds:
        """A copy of the current bounds."""
        return self._bounds.copy()
