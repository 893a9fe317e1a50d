"""Date and coordinate formatting for result items.

The display date of an item is the calendar date of its capture time in the
viewer's time zone. Routes are grouped by it, so the time zone is injectable
to keep grouping deterministic in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
import math

from core.models import ResultItem

DISPLAY_DATE_FMT = "%Y-%m-%d"
DISPLAY_TIME_FMT = "%H:%M:%S"


@dataclass
class DegreesMinutesSeconds:
    degrees: int
    minutes: int
    seconds: float


class DateDisplayer:
    """Formats item dates and locations for display and route grouping."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        """Create a displayer.

        Args:
            tz: Zone used to derive calendar dates. None means the local zone.
        """
        self._tz = tz

    def _local(self, dt: datetime) -> datetime:
        if dt.tzinfo is None:
            # Naive timestamps are already wall-clock time
            return dt
        return dt.astimezone(self._tz)

    def display_date(self, item: ResultItem) -> str | None:
        """Calendar date of the item's capture time, or None when undated."""
        if item.created_date is None:
            return None
        return self._local(item.created_date).strftime(DISPLAY_DATE_FMT)

    def display_date_and_time(self, item: ResultItem) -> str | None:
        if item.created_date is None:
            return None
        local = self._local(item.created_date)
        return f"{local.strftime(DISPLAY_DATE_FMT)}  {local.strftime(DISPLAY_TIME_FMT)}"

    def latitude_dms(self, latitude: float | None) -> str:
        if latitude is None:
            return ""
        return self._convert_to_dms(latitude, ("N", "S"))

    def longitude_dms(self, longitude: float | None) -> str:
        if longitude is None:
            return ""
        return self._convert_to_dms(longitude, ("E", "W"))

    def _convert_to_dms(self, degrees: float, refs: tuple[str, str]) -> str:
        dms = degrees_to_dms(degrees)
        ref = refs[0]
        if degrees < 0:
            ref = refs[1]
        return f"{abs(dms.degrees)}° {dms.minutes}' {dms.seconds:.2f}\" {ref}"


def degrees_to_dms(degrees: float) -> DegreesMinutesSeconds:
    """Split decimal degrees into whole degrees (truncated toward zero), minutes, seconds."""
    whole = math.ceil(degrees) if degrees < 0 else math.floor(degrees)
    minutes_seconds = abs(degrees - whole) * 60.0
    minutes = math.floor(minutes_seconds)
    seconds = (minutes_seconds - minutes) * 60.0
    return DegreesMinutesSeconds(degrees=int(whole), minutes=int(minutes), seconds=seconds)
