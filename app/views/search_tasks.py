from __future__ import annotations

from typing import Any

from PySide6.QtCore import QObject, QRunnable, QThreadPool
from loguru import logger

from core.errors import SearchError
from core.models import SearchDescriptor


class _PageTask(QRunnable):
    """QRunnable for one background page fetch.

    Emits `receiver.pageLoaded(generation, page)` on success and
    `receiver.pageFailed(generation, error)` on failure. The receiver is
    expected to own Qt `Signal(int, object)`s with those names; since the
    receiver lives on the GUI thread, the slots run there, one at a time.
    """

    def __init__(
        self, *, generation: int, descriptor: SearchDescriptor, client: Any, receiver: QObject
    ) -> None:
        super().__init__()
        self._generation = generation
        self._descriptor = descriptor
        self._client = client
        self._receiver = receiver

    def run(self) -> None:  # type: ignore[override]
        try:
            page = self._client.fetch_page(self._descriptor)
        except SearchError as ex:
            self._receiver.pageFailed.emit(self._generation, ex)  # type: ignore[attr-defined]
            return
        except Exception as ex:  # pragma: no cover - GUI background task
            logger.exception("Page task failed unexpectedly")
            self._receiver.pageFailed.emit(self._generation, SearchError(str(ex)))  # type: ignore[attr-defined]
            return
        self._receiver.pageLoaded.emit(self._generation, page)  # type: ignore[attr-defined]


class SearchTaskRunner:
    """Dispatches page fetches to the global thread pool.

    Implements the view model's `request_page(generation, descriptor)`. The
    view model only asks for a page after the previous one was folded, so at
    most one task per session is ever in flight.
    """

    def __init__(self, *, client: Any, receiver: QObject) -> None:
        self._client = client
        self._receiver = receiver
        self._pool = QThreadPool.globalInstance()

    def request_page(self, generation: int, descriptor: SearchDescriptor) -> None:
        logger.debug("Queue page fetch: session {} first {}", generation, descriptor.first)
        task = _PageTask(
            generation=generation,
            descriptor=descriptor,
            client=self._client,
            receiver=self._receiver,
        )
        self._pool.start(task)
