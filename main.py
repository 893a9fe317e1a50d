from __future__ import annotations

import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication
from loguru import logger

from app.viewmodels.map_vm import QUERY_PROPERTIES, MapVM
from app.views.main_window import MapWindow
from infrastructure.logging import init_logging
from infrastructure.search_client import SearchClient
from infrastructure.settings import JsonSettings


BASE_DIR = Path(__file__).parent


def _parse_properties(settings: JsonSettings) -> tuple[str, ...]:
    # Expect a list like: ["createdDate", "id", "latitude", ...]
    raw = settings.get("search.properties", list(QUERY_PROPERTIES))
    if isinstance(raw, list) and raw:
        return tuple(str(p) for p in raw)
    return QUERY_PROPERTIES


def main() -> int:
    settings = JsonSettings(BASE_DIR / "settings.json")
    log_dir = settings.get("logging.directory")
    log_path = init_logging(log_dir, level=str(settings.get("logging.level", "INFO")))

    base_url = str(settings.get("server.base_url"))
    logger.info("Starting with server {}", base_url)

    app = QApplication(sys.argv)

    client = SearchClient(base_url, timeout=settings.get_float("server.timeout_seconds", 30.0))
    vm = MapVM(
        page_size=settings.get_int("search.page_size", 100),
        properties=_parse_properties(settings),
        nearby_max_matches=settings.get_int("nearby.max_matches", 2000),
        nearby_max_kilometers=settings.get_float("nearby.max_kilometers", 10.5),
        fit_bounds_on_first_results=bool(settings.get("map.fit_bounds_on_first_results", True)),
    )
    win = MapWindow(vm=vm, client=client, log_dir=str(log_path))
    win.show()

    # Any command-line words start a text search right away
    query = " ".join(app.arguments()[1:]).strip()
    if query:
        win.search_edit.setText(query)
        vm.search_with_text(query)

    try:
        return app.exec()
    finally:
        client.close()


if __name__ == "__main__":
    raise SystemExit(main())
