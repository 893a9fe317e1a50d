"""MapWindow: search controls, plotted markers and daily routes.

Tile rendering and marker clustering are left to a map widget; this window
plots into tables: one row per marker, and a route selector listing the
points of the chosen day.
"""

from __future__ import annotations

from typing import Any

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QMainWindow,
    QProgressBar,
    QPushButton,
    QSpinBox,
    QSplitter,
    QTreeView,
    QVBoxLayout,
    QWidget,
)
from loguru import logger

from app.viewmodels.map_vm import MapVM
from app.viewmodels.marker_vm import MarkerVM
from app.views.components.menu_controller import MenuController
from app.views.constants import (
    COL_INDEX,
    INDEX_ROLE,
    NUM_COLUMNS,
    STATUS_TIMEOUT_MS,
    WINDOW_TITLE,
)
from app.views.marker_model_builder import append_marker_rows, build_marker_model
from app.views.search_tasks import SearchTaskRunner
from core.models import GeoBounds
from infrastructure.logging import open_latest_log, open_log_directory


class MapWindow(QMainWindow):
    """Main application window for map searches."""

    # Delivered from pool threads; queued onto the GUI thread
    pageLoaded = Signal(int, object)  # generation, ResultPage
    pageFailed = Signal(int, object)  # generation, SearchError

    def __init__(self, vm: MapVM, client: Any, log_dir: str | None = None) -> None:
        """Create the window and wire it to the view model.

        Args:
            vm: Map view model
            client: Search client with `fetch_page(descriptor)`
            log_dir: Directory opened by the Log menu
        """
        super().__init__()
        self._vm = vm
        self._log_dir = log_dir
        self._runner = SearchTaskRunner(client=client, receiver=self)
        self._vm.attach_runner(self._runner)
        self._vm.set_listener(self)

        self._model, self._proxy = build_marker_model()
        self.menu_controller = MenuController(self)

        self._setup_ui()
        self._connect_signals()
        self.setWindowTitle(WINDOW_TITLE)
        self.statusBar().showMessage("Ready", STATUS_TIMEOUT_MS)

    def _setup_ui(self) -> None:
        central = QWidget(self)
        root = QVBoxLayout(central)

        text_row = QHBoxLayout()
        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("Search text")
        self.search_button = QPushButton("Search")
        text_row.addWidget(self.search_edit, 1)
        text_row.addWidget(self.search_button)
        root.addLayout(text_row)

        options_row = QHBoxLayout()
        self.month_spin = QSpinBox()
        self.month_spin.setRange(1, 12)
        self.day_spin = QSpinBox()
        self.day_spin.setRange(1, 31)
        self.by_day_button = QPushButton("By Day")
        self.lat_spin = QDoubleSpinBox()
        self.lat_spin.setRange(-90.0, 90.0)
        self.lat_spin.setDecimals(6)
        self.lon_spin = QDoubleSpinBox()
        self.lon_spin.setRange(-180.0, 180.0)
        self.lon_spin.setDecimals(6)
        self.nearby_button = QPushButton("Nearby")
        for label, widget in (
            ("Month", self.month_spin),
            ("Day", self.day_spin),
            (None, self.by_day_button),
            ("Lat", self.lat_spin),
            ("Lon", self.lon_spin),
            (None, self.nearby_button),
        ):
            if label:
                options_row.addWidget(QLabel(label))
            options_row.addWidget(widget)
        options_row.addStretch(1)
        root.addLayout(options_row)

        self.progress = QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setValue(100)
        root.addWidget(self.progress)

        self.tree = QTreeView()
        self.tree.setRootIsDecorated(False)
        self.tree.setUniformRowHeights(True)
        self.tree.setSortingEnabled(True)
        self.tree.setModel(self._proxy)
        self.tree.sortByColumn(COL_INDEX, Qt.AscendingOrder)

        right = QWidget()
        right_layout = QVBoxLayout(right)
        self.route_combo = QComboBox()
        self.route_points = QListWidget()
        self.bounds_label = QLabel("")
        self.item_label = QLabel("")
        self.item_label.setWordWrap(True)
        right_layout.addWidget(QLabel("Routes"))
        right_layout.addWidget(self.route_combo)
        right_layout.addWidget(self.route_points, 1)
        right_layout.addWidget(self.bounds_label)
        right_layout.addWidget(self.item_label)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(self.tree)
        splitter.addWidget(right)
        splitter.setStretchFactor(0, 7)
        splitter.setStretchFactor(1, 3)
        root.addWidget(splitter, 1)

        self.setCentralWidget(central)
        self.menu_controller.setup_menus()
        self.resize(1200, 800)

    def _connect_signals(self) -> None:
        self.pageLoaded.connect(self._on_page_loaded)
        self.pageFailed.connect(self._on_page_failed)

        self.search_button.clicked.connect(self.on_search_text)
        self.search_edit.returnPressed.connect(self.on_search_text)
        self.by_day_button.clicked.connect(self.on_search_by_day)
        self.nearby_button.clicked.connect(self.on_search_nearby)
        self.route_combo.currentTextChanged.connect(self.on_route_selected)
        self.tree.clicked.connect(self.on_marker_clicked)

        self.menu_controller.connect_actions(
            {
                "previous_day": self._vm.search_previous_day,
                "next_day": self._vm.search_next_day,
                "cancel": self.on_cancel,
                "exit": self.close,
                "open_latest_log": lambda: open_latest_log(self._log_dir),
                "open_log_directory": lambda: open_log_directory(self._log_dir),
            }
        )
        self._update_day_actions()

    # Commands

    def on_search_text(self) -> None:
        self._vm.search_with_text(self.search_edit.text())

    def on_search_by_day(self) -> None:
        try:
            self._vm.search_by_day(self.month_spin.value(), self.day_spin.value())
        except ValueError as ex:
            self.statusBar().showMessage(str(ex), STATUS_TIMEOUT_MS)

    def on_search_nearby(self) -> None:
        self._vm.search_near(self.lat_spin.value(), self.lon_spin.value())

    def on_cancel(self) -> None:
        self._vm.cancel()
        self.progress.setValue(100)
        self.statusBar().showMessage("Stopped", STATUS_TIMEOUT_MS)

    def on_route_selected(self, key: str) -> None:
        self.route_points.clear()
        route = self._vm.select_route(key) if key else None
        if route is None:
            return
        for lat, lon in route.points:
            self.route_points.addItem(f"{lat:.6f}, {lon:.6f}")

    def on_marker_clicked(self, proxy_index) -> None:
        source = self._proxy.mapToSource(proxy_index)
        index_item = self._model.item(source.row(), COL_INDEX)
        if index_item is None:
            return
        marker = self._vm.select_marker(int(index_item.data(INDEX_ROLE)))
        if marker is None:
            return
        self.item_label.setText(
            f"#{marker.index} {marker.name}\n{marker.date_text}\n"
            f"{marker.latitude_text}  {marker.longitude_text}\n{marker.location_name}"
        )

    # Runner signals (GUI thread)

    def _on_page_loaded(self, generation: int, page: object) -> None:
        self._vm.on_page_loaded(generation, page)  # type: ignore[arg-type]
        self._update_progress()

    def _on_page_failed(self, generation: int, error: object) -> None:
        self._vm.on_page_failed(generation, error)  # type: ignore[arg-type]
        self._update_progress()

    def _update_progress(self) -> None:
        self.progress.setValue(self._vm.percentage_loaded)
        if self._vm.is_loading:
            self.statusBar().showMessage(
                f"Loaded {self._vm.matches_retrieved} of {self._vm.total_matches}"
            )

    def _update_day_actions(self) -> None:
        self.menu_controller.enable_action("previous_day", self._vm.previous_available_by_day is not None)
        self.menu_controller.enable_action("next_day", self._vm.next_available_by_day is not None)

    # MapViewListener

    def search_started(self, readable: str) -> None:
        self._model.removeRows(0, self._model.rowCount())
        self.route_combo.clear()
        self.route_points.clear()
        self.bounds_label.setText("")
        self.item_label.setText("")
        self.progress.setValue(0)
        self.setWindowTitle(f"{WINDOW_TITLE} -- {readable}")
        self.statusBar().showMessage(f"Searching {readable}...")

    def markers_added(self, markers: list[MarkerVM]) -> None:
        append_marker_rows(self._model, markers)

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None:
        if bounds.is_empty:
            self.bounds_label.setText("No locations")
            return
        self.bounds_label.setText(
            f"SW {bounds.south_west[0]:.5f}, {bounds.south_west[1]:.5f}   "
            f"NE {bounds.north_east[0]:.5f}, {bounds.north_east[1]:.5f}"
        )
        if fit:
            for i in range(NUM_COLUMNS):
                self.tree.resizeColumnToContents(i)

    def search_completed(self, route_keys: list[str], bounds: GeoBounds) -> None:
        self.route_combo.blockSignals(True)
        self.route_combo.clear()
        self.route_combo.addItem("")
        self.route_combo.addItems(route_keys)
        self.route_combo.blockSignals(False)
        self._update_day_actions()
        self.statusBar().showMessage(
            f"{self._vm.total_matches} matches, {len(self._vm.markers)} with location, "
            f"{len(route_keys)} routes",
        )

    def search_failed(self, message: str) -> None:
        logger.warning("Search failed: {}", message)
        self._update_day_actions()
        self.statusBar().showMessage(message)
