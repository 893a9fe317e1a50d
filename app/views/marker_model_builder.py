from __future__ import annotations

from collections.abc import Iterable

from PySide6.QtCore import QSortFilterProxyModel, Qt
from PySide6.QtGui import QStandardItem, QStandardItemModel

from app.viewmodels.marker_vm import MarkerVM
from app.views.constants import (
    COL_DATE,
    COL_INDEX,
    COL_LATITUDE,
    COL_LONGITUDE,
    COL_LOCATION,
    COL_NAME,
    COORDINATE_DECIMALS,
    HEADERS,
    INDEX_ROLE,
    SORT_ROLE,
)


def build_marker_model() -> tuple[QStandardItemModel, QSortFilterProxyModel]:
    """Builds an empty marker table model and a proxy sorting by `SORT_ROLE`."""
    model = QStandardItemModel()
    model.setHorizontalHeaderLabels(HEADERS)

    proxy = QSortFilterProxyModel()
    proxy.setSortRole(SORT_ROLE)
    proxy.setSortCaseSensitivity(Qt.CaseInsensitive)
    proxy.setSourceModel(model)
    return model, proxy


def append_marker_rows(model: QStandardItemModel, markers: Iterable[MarkerVM]) -> int:
    """Append one row per marker; returns the number of rows added."""
    added = 0
    for m in markers:
        row = [
            QStandardItem(str(m.index)),
            QStandardItem(m.name),
            QStandardItem(m.date_text),
            QStandardItem(f"{m.latitude:.{COORDINATE_DECIMALS}f}"),
            QStandardItem(f"{m.longitude:.{COORDINATE_DECIMALS}f}"),
            QStandardItem(m.location_name),
        ]
        row[COL_INDEX].setData(m.index, INDEX_ROLE)
        row[COL_INDEX].setData(m.index, SORT_ROLE)
        row[COL_NAME].setData(m.name.lower(), SORT_ROLE)
        # ISO-like date text sorts chronologically as a string
        row[COL_DATE].setData(m.date_text, SORT_ROLE)
        row[COL_LATITUDE].setData(m.latitude, SORT_ROLE)
        row[COL_LATITUDE].setToolTip(m.latitude_text)
        row[COL_LONGITUDE].setData(m.longitude, SORT_ROLE)
        row[COL_LONGITUDE].setToolTip(m.longitude_text)
        row[COL_LOCATION].setData(m.location_name.lower(), SORT_ROLE)
        for it in row:
            it.setEditable(False)
        model.appendRow(row)
        added += 1
    return added
