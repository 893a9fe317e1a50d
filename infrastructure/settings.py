"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_SETTINGS: dict[str, Any] = {
    "server": {
        "base_url": "http://localhost:5000",
        "timeout_seconds": 30,
    },
    "search": {
        "page_size": 100,
        "properties": [
            "createdDate",
            "id",
            "imageName",
            "latitude",
            "longitude",
            "locationDisplayName",
            "thumbUrl",
        ],
    },
    "nearby": {
        "max_matches": 2000,
        "max_kilometers": 10.5,
    },
    "map": {
        "fit_bounds_on_first_results": True,
    },
    "logging": {
        "level": "INFO",
        "directory": None,
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay `override` onto a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class JsonSettings:
    """JSON settings reader with dotted-key access over built-in defaults.

    A missing file is not an error: the defaults are used and a warning is
    logged. A file that exists but is not valid JSON raises.
    """

    def __init__(self, settings_path: str | Path | None = None) -> None:
        self._path = Path(settings_path) if settings_path is not None else None
        data: dict[str, Any] = {}
        if self._path is not None:
            if self._path.exists():
                with self._path.open("r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError(f"settings root must be an object: {self._path}")
                data = loaded
            else:
                logger.warning("settings.json not found, using defaults: {}", self._path)
        self._data = _merge(DEFAULT_SETTINGS, data)

    @property
    def path(self) -> Path | None:
        return self._path

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(self.get(key, default))
        except (TypeError, ValueError):
            logger.warning("Setting {} is not an integer; using {}", key, default)
            return default

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.get(key, default))
        except (TypeError, ValueError):
            logger.warning("Setting {} is not a number; using {}", key, default)
            return default
