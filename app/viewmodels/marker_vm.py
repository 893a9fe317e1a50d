"""Lightweight view model wrapper around a plotted `Marker`."""

from __future__ import annotations

from dataclasses import dataclass

from core.models import Marker
from core.services.date_displayer import DateDisplayer


@dataclass
class MarkerVM:
    """Expose convenient properties for bindings/templates."""

    marker: Marker
    displayer: DateDisplayer

    @property
    def index(self) -> int:
        """1-based position of the item in the full result list."""
        return self.marker.index

    @property
    def item_id(self) -> str:
        return self.marker.item.id

    @property
    def name(self) -> str:
        """Image name when the server returned one, else the item id."""
        return str(self.marker.item.display_fields.get("imageName") or self.marker.item.id)

    @property
    def date_text(self) -> str:
        return self.displayer.display_date_and_time(self.marker.item) or ""

    @property
    def latitude(self) -> float:
        return float(self.marker.item.latitude or 0.0)

    @property
    def longitude(self) -> float:
        return float(self.marker.item.longitude or 0.0)

    @property
    def latitude_text(self) -> str:
        return self.displayer.latitude_dms(self.marker.item.latitude)

    @property
    def longitude_text(self) -> str:
        return self.displayer.longitude_dms(self.marker.item.longitude)

    @property
    def location_name(self) -> str:
        return str(self.marker.item.display_fields.get("locationDisplayName") or "")

    @property
    def thumb_url(self) -> str:
        return str(self.marker.item.display_fields.get("thumbUrl") or "")
