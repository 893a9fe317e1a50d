"""
UI/view constants centralized for reuse across view modules.
"""

from __future__ import annotations

from PySide6.QtCore import Qt

# Marker table columns
HEADERS: list[str] = [
    "#",
    "Name",
    "Date",
    "Latitude",
    "Longitude",
    "Location",
]

COL_INDEX: int = 0
COL_NAME: int = 1
COL_DATE: int = 2
COL_LATITUDE: int = 3
COL_LONGITUDE: int = 4
COL_LOCATION: int = 5
NUM_COLUMNS: int = 6


# Data roles
INDEX_ROLE: int = Qt.UserRole  # 1-based result index on the first column
SORT_ROLE: int = Qt.UserRole + 1  # used by QSortFilterProxyModel


# Window defaults
WINDOW_TITLE: str = "Photo Map"
STATUS_TIMEOUT_MS: int = 3000
COORDINATE_DECIMALS: int = 6
