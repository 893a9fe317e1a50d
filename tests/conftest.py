"""Shared fixtures and helpers.

The project root is put on `sys.path` so `import core.*` resolves when the
tests are run from anywhere.
"""

from __future__ import annotations

from datetime import datetime, timezone
import sys
from pathlib import Path

import pytest

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from core.models import ResultItem, ResultPage, SearchDescriptor  # noqa: E402
from core.services.date_displayer import DateDisplayer  # noqa: E402


def _make_item(
    item_id: str,
    day: int | None = 1,
    lat: float | None = None,
    lon: float | None = None,
    hour: int = 12,
) -> ResultItem:
    """Item taken on 2020-05-`day` at `hour`:00 UTC (undated when `day` is None)."""
    created = None if day is None else datetime(2020, 5, day, hour, 0, 0, tzinfo=timezone.utc)
    return ResultItem(id=item_id, created_date=created, latitude=lat, longitude=lon)


def _make_page(items: list[ResultItem], total: int) -> ResultPage:
    return ResultPage(items=items, total_matches=total, result_count=len(items))


class FakeFetch:
    """Serves pages by cursor and records the cursor of every call."""

    def __init__(self, pages: dict[int, ResultPage], errors: dict[int, Exception] | None = None) -> None:
        self._pages = pages
        self._errors = errors or {}
        self.calls: list[int] = []

    def __call__(self, descriptor: SearchDescriptor) -> ResultPage:
        self.calls.append(descriptor.first)
        if descriptor.first in self._errors:
            raise self._errors[descriptor.first]
        return self._pages.get(descriptor.first, _make_page([], 0))


@pytest.fixture
def displayer() -> DateDisplayer:
    return DateDisplayer(tz=timezone.utc)


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def make_page():
    return _make_page


@pytest.fixture
def fake_fetch():
    return FakeFetch
