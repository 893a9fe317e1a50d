"""Session orchestration for paged geo searches.

A session is one search from its first page to completion or failure. The
aggregator resets all running state when a session starts, folds every page
that arrives into the bounds and route segmentation, and decides whether
another page is needed. Pages are requested strictly one at a time: each
callback returns the next `PageRequest` (or None), and nothing else is
fetched until that request's page has been folded.

Every request carries the generation of the session that issued it. Starting
a new session (or cancelling) bumps the generation, so a late page or error
from an older session is recognized and ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from loguru import logger

from core.errors import SearchError
from core.models import GeoBounds, Marker, ResultPage, RouteMap, SearchDescriptor
from core.services.bounds_tracker import BoundsTracker
from core.services.date_displayer import DateDisplayer
from core.services.route_segmenter import RouteSegmenter


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class PageRequest:
    """A page fetch to perform on behalf of session `generation`."""

    generation: int
    descriptor: SearchDescriptor


@dataclass
class PageOutcome:
    """What changed after one page was folded."""

    generation: int
    markers: list[Marker]
    bounds: GeoBounds
    fit_bounds: bool
    matches_retrieved: int
    total_matches: int
    next_request: PageRequest | None = None

    @property
    def done(self) -> bool:
        return self.next_request is None


class PlotSink(Protocol):
    """Receives aggregated data for display."""

    def markers_added(self, markers: list[Marker]) -> None: ...

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None: ...

    def session_completed(self, routes: RouteMap, bounds: GeoBounds) -> None: ...

    def session_failed(self, message: str) -> None: ...


class NullPlotSink:
    def markers_added(self, markers: list[Marker]) -> None:
        pass

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None:
        pass

    def session_completed(self, routes: RouteMap, bounds: GeoBounds) -> None:
        pass

    def session_failed(self, message: str) -> None:
        pass


@dataclass
class Session:
    """Running state of one search; owned by the aggregator."""

    generation: int
    descriptor: SearchDescriptor
    bounds: BoundsTracker
    segmenter: RouteSegmenter
    max_matches_allowed: int = 0
    fit_bounds_on_first_page: bool = True
    state: SessionState = SessionState.LOADING
    matches_retrieved: int = 0
    total_matches: int = 0
    fetch_count: int = 0
    error: str | None = None
    markers: list[Marker] = field(default_factory=list)
    last_page: ResultPage | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.LOADING


class SessionAggregator:
    """Owns the active search session and drives its page sequence."""

    def __init__(
        self,
        displayer: DateDisplayer | None = None,
        sink: PlotSink | None = None,
    ) -> None:
        self._displayer = displayer or DateDisplayer()
        self._sink: PlotSink = sink or NullPlotSink()
        self._generation = 0
        self._session: Session | None = None

    def start_session(
        self,
        descriptor: SearchDescriptor,
        max_matches_allowed: int = 0,
        fit_bounds_on_first_page: bool = True,
    ) -> PageRequest:
        """Discard any previous session and return the request for page 1.

        Args:
            descriptor: What to search for; its cursor is reset to 1.
            max_matches_allowed: Cap on reported/fetched matches; 0 for none.
            fit_bounds_on_first_page: Ask the sink to fit the view after page 1.
        """
        self._generation += 1
        descriptor.first = 1
        self._session = Session(
            generation=self._generation,
            descriptor=descriptor,
            bounds=BoundsTracker(),
            segmenter=RouteSegmenter(self._displayer),
            max_matches_allowed=max(0, int(max_matches_allowed or 0)),
            fit_bounds_on_first_page=fit_bounds_on_first_page,
        )
        logger.info(
            "Session {} started: {} (page size {}, cap {})",
            self._generation,
            descriptor.kind.name,
            descriptor.page_size,
            self._session.max_matches_allowed or "none",
        )
        return self._request()

    def cancel(self) -> None:
        """Invalidate the current session; late callbacks for it are ignored."""
        self._generation += 1
        if self._session is not None:
            logger.info("Session {} cancelled", self._session.generation)
        self._session = None

    def _request(self) -> PageRequest:
        if self._session is None:
            raise RuntimeError("No session is active")
        self._session.fetch_count += 1
        return PageRequest(self._session.generation, self._session.descriptor.copy())

    def _current(self, generation: int, what: str) -> Session | None:
        session = self._session
        if session is None or generation != session.generation:
            logger.debug("Ignoring stale {} from session {} (current {})", what, generation, self._generation)
            return None
        if not session.is_loading:
            logger.warning("Ignoring {} for session {} in state {}", what, generation, session.state.value)
            return None
        return session

    def on_page_arrived(self, generation: int, page: ResultPage) -> PageOutcome | None:
        """Fold one page and decide whether another is needed.

        Returns None when the page belongs to a superseded session.
        """
        session = self._current(generation, "page")
        if session is None:
            return None

        descriptor = session.descriptor
        session.last_page = page
        markers: list[Marker] = []
        for offset, item in enumerate(page.items):
            if session.bounds.fold(item):
                markers.append(Marker(index=descriptor.first + offset, item=item))
            session.segmenter.fold_item(item)
        session.markers.extend(markers)

        if session.max_matches_allowed > 0:
            session.total_matches = min(page.total_matches, session.max_matches_allowed)
        else:
            session.total_matches = page.total_matches
        session.matches_retrieved = descriptor.first + page.result_count - 1

        fit = session.fit_bounds_on_first_page and descriptor.first == 1
        bounds = session.bounds.bounds
        logger.debug(
            "Session {} page at {}: {} items, {} geotagged, {}/{} retrieved",
            generation,
            descriptor.first,
            page.result_count,
            len(markers),
            session.matches_retrieved,
            session.total_matches,
        )

        outcome = PageOutcome(
            generation=generation,
            markers=markers,
            bounds=bounds,
            fit_bounds=fit,
            matches_retrieved=session.matches_retrieved,
            total_matches=session.total_matches,
        )
        self._sink.markers_added(markers)
        self._sink.bounds_changed(bounds, fit)

        if page.result_count > 0 and session.matches_retrieved < session.total_matches:
            descriptor.first += descriptor.page_size
            outcome.next_request = self._request()
            return outcome

        routes = session.segmenter.finalize()
        session.state = SessionState.DONE
        logger.info(
            "Session {} done after {} fetches: {} matches, {} markers, {} routes",
            generation,
            session.fetch_count,
            session.matches_retrieved,
            len(session.markers),
            len(routes),
        )
        self._sink.session_completed(routes, bounds)
        return outcome

    def on_page_error(self, generation: int, error: Exception) -> None:
        """Stop the session; whatever was folded so far stays visible."""
        session = self._current(generation, "error")
        if session is None:
            return
        message = error.message if isinstance(error, SearchError) else str(error)
        session.state = SessionState.ERROR
        session.error = message
        logger.error("Session {} failed at {}: {}", generation, session.descriptor.first, message)
        self._sink.session_failed(message)

    def run(
        self,
        fetch_page: Callable[[SearchDescriptor], ResultPage],
        descriptor: SearchDescriptor,
        max_matches_allowed: int = 0,
        fit_bounds_on_first_page: bool = True,
    ) -> Iterator[PageOutcome]:
        """Run one session to completion, yielding after each folded page.

        A `SearchError` from `fetch_page` ends the sequence with the session
        in the ERROR state. Any other exception also moves the session to ERROR
        and is re-raised. Starting another session while iterating ends
        this sequence before its next fetch.
        """
        request: PageRequest | None = self.start_session(
            descriptor, max_matches_allowed, fit_bounds_on_first_page
        )
        while request is not None:
            if request.generation != self._generation:
                return
            try:
                page = fetch_page(request.descriptor)
            except SearchError as ex:
                self.on_page_error(request.generation, ex)
                return
            except Exception as ex:
                self.on_page_error(request.generation, ex)
                raise
            outcome = self.on_page_arrived(request.generation, page)
            if outcome is None:
                return
            yield outcome
            request = outcome.next_request

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def is_loading(self) -> bool:
        return self._session is not None and self._session.is_loading

    @property
    def bounds(self) -> GeoBounds:
        return self._session.bounds.bounds if self._session else GeoBounds()

    @property
    def routes(self) -> RouteMap:
        return self._session.segmenter.routes if self._session else RouteMap()

    @property
    def route_keys(self) -> list[str]:
        return self.routes.keys()

    @property
    def markers(self) -> list[Marker]:
        return list(self._session.markers) if self._session else []

    @property
    def matches_retrieved(self) -> int:
        return self._session.matches_retrieved if self._session else 0

    @property
    def total_matches(self) -> int:
        return self._session.total_matches if self._session else 0

    @property
    def error(self) -> str | None:
        return self._session.error if self._session else None

    @property
    def percentage_loaded(self) -> int:
        if not self.is_loading:
            return 100
        if self.total_matches <= 0:
            return 0
        return round(self.matches_retrieved * 100 / self.total_matches)
