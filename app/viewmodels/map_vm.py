"""ViewModel for the map screen: search commands and aggregated results."""

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from app.viewmodels.marker_vm import MarkerVM
from core.models import (
    ByDayCriteria,
    DayLink,
    GeoBounds,
    Marker,
    NearbyCriteria,
    ResultPage,
    Route,
    RouteMap,
    SearchDescriptor,
    SearchKind,
    TextCriteria,
)
from core.services.date_displayer import DateDisplayer
from core.services.request_builder import SearchRequestBuilder
from core.services.session_aggregator import SessionAggregator, SessionState

QUERY_PROPERTIES: tuple[str, ...] = (
    "createdDate",
    "id",
    "imageName",
    "latitude",
    "longitude",
    "locationDisplayName",
    "thumbUrl",
)
DEFAULT_PAGE_SIZE = 100
NEARBY_MAX_MATCHES = 2000
NEARBY_MAX_KILOMETERS = 10.5


class PageRunner(Protocol):
    """Performs one page fetch and reports back through the view model."""

    def request_page(self, generation: int, descriptor: SearchDescriptor) -> None: ...


class MapViewListener(Protocol):
    """Notifications a view receives while a search progresses."""

    def search_started(self, readable: str) -> None: ...

    def markers_added(self, markers: list[MarkerVM]) -> None: ...

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None: ...

    def search_completed(self, route_keys: list[str], bounds: GeoBounds) -> None: ...

    def search_failed(self, message: str) -> None: ...


class _NullListener:
    def search_started(self, readable: str) -> None:
        pass

    def markers_added(self, markers: list[MarkerVM]) -> None:
        pass

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None:
        pass

    def search_completed(self, route_keys: list[str], bounds: GeoBounds) -> None:
        pass

    def search_failed(self, message: str) -> None:
        pass


class MapVM:
    """Map screen view-model.

    Mediates between a page runner (which performs fetches off the UI thread
    and calls back into `on_page_loaded` / `on_page_failed`) and the view.
    All callbacks must be delivered on the thread that owns this object.
    """

    def __init__(
        self,
        runner: PageRunner | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        properties: tuple[str, ...] | list[str] = QUERY_PROPERTIES,
        nearby_max_matches: int = NEARBY_MAX_MATCHES,
        nearby_max_kilometers: float = NEARBY_MAX_KILOMETERS,
        fit_bounds_on_first_results: bool = True,
        displayer: DateDisplayer | None = None,
        builder: SearchRequestBuilder | None = None,
    ) -> None:
        """Create a MapVM.

        Args:
            runner: Object with `request_page(generation, descriptor)`.
            page_size: Results requested per fetch.
            properties: Item fields requested from the server.
            nearby_max_matches: Cap applied to nearby searches.
            nearby_max_kilometers: Radius sent with nearby searches.
            fit_bounds_on_first_results: Fit the view after the first page of
                text and by-day searches. Nearby searches never fit.
            displayer: Date formatting used for route keys and marker text.
            builder: Request builder used for readable strings and links.
        """
        self._runner = runner
        self._listener: MapViewListener = _NullListener()
        self._page_size = page_size
        self._properties = tuple(properties)
        self._nearby_max_matches = nearby_max_matches
        self._nearby_max_kilometers = nearby_max_kilometers
        self._fit_bounds_on_first_results = fit_bounds_on_first_results
        self._displayer = displayer or DateDisplayer()
        self._builder = builder or SearchRequestBuilder()
        self._aggregator = SessionAggregator(displayer=self._displayer, sink=self)

        self.markers: list[MarkerVM] = []
        self.readable_search_string: str = ""
        self.page_error: str | None = None
        self.current_marker: MarkerVM | None = None
        self.current_route: Route | None = None
        self._descriptor: SearchDescriptor | None = None

    def attach_runner(self, runner: PageRunner) -> None:
        self._runner = runner

    def set_listener(self, listener: MapViewListener | None) -> None:
        self._listener = listener or _NullListener()

    # Search commands

    def search_with_text(self, text: str) -> None:
        descriptor = SearchDescriptor(
            kind=SearchKind.TEXT,
            criteria=TextCriteria(text=text.strip()),
            properties=self._properties,
            page_size=self._page_size,
        )
        self.start_search(descriptor, 0, self._fit_bounds_on_first_results)

    def search_by_day(self, month: int, day: int) -> None:
        descriptor = SearchDescriptor(
            kind=SearchKind.BY_DAY,
            criteria=ByDayCriteria(month=month, day=day),
            properties=self._properties,
            page_size=self._page_size,
        )
        self.start_search(descriptor, 0, self._fit_bounds_on_first_results)

    def search_near(self, latitude: float, longitude: float) -> None:
        """Search around a point; capped, and the view is not refit."""
        descriptor = SearchDescriptor(
            kind=SearchKind.NEARBY,
            criteria=NearbyCriteria(
                latitude=latitude,
                longitude=longitude,
                max_kilometers=self._nearby_max_kilometers,
            ),
            properties=self._properties,
            page_size=self._page_size,
        )
        self.start_search(descriptor, self._nearby_max_matches, False)

    def search_previous_day(self) -> bool:
        """Run a by-day search for the previous day with matches, if known."""
        return self._search_day_link(self.previous_available_by_day)

    def search_next_day(self) -> bool:
        return self._search_day_link(self.next_available_by_day)

    def _search_day_link(self, link: DayLink | None) -> bool:
        if link is None:
            return False
        self.search_by_day(link.month, link.day)
        return True

    def start_search(
        self,
        descriptor: SearchDescriptor,
        max_matches_allowed: int = 0,
        fit_bounds_on_first_page: bool = True,
    ) -> None:
        """Reset everything shown and start a new session for `descriptor`."""
        if self._runner is None:
            raise RuntimeError("MapVM has no page runner attached")

        self.close_item()
        self.current_route = None
        self.markers = []
        self.page_error = None
        self._descriptor = descriptor
        self.readable_search_string = self._builder.to_readable_string(descriptor)

        request = self._aggregator.start_session(
            descriptor,
            max_matches_allowed=max_matches_allowed,
            fit_bounds_on_first_page=fit_bounds_on_first_page,
        )
        self._listener.search_started(self.readable_search_string)
        self._runner.request_page(request.generation, request.descriptor)

    def cancel(self) -> None:
        self._aggregator.cancel()

    # Runner callbacks

    def on_page_loaded(self, generation: int, page: ResultPage) -> None:
        outcome = self._aggregator.on_page_arrived(generation, page)
        if outcome is None or outcome.next_request is None:
            return
        if self._runner is None:
            raise RuntimeError("MapVM has no page runner attached")
        request = outcome.next_request
        self._runner.request_page(request.generation, request.descriptor)

    def on_page_failed(self, generation: int, error: Exception) -> None:
        self._aggregator.on_page_error(generation, error)

    # PlotSink

    def markers_added(self, markers: list[Marker]) -> None:
        added = [MarkerVM(marker=m, displayer=self._displayer) for m in markers]
        self.markers.extend(added)
        if added:
            self._listener.markers_added(added)

    def bounds_changed(self, bounds: GeoBounds, fit: bool) -> None:
        self._listener.bounds_changed(bounds, fit)

    def session_completed(self, routes: RouteMap, bounds: GeoBounds) -> None:
        logger.info(
            "Search {} complete: {} markers, {} routes",
            self.readable_search_string,
            len(self.markers),
            len(routes),
        )
        self._listener.search_completed(routes.keys(), bounds)

    def session_failed(self, message: str) -> None:
        self.page_error = message
        self._listener.search_failed(message)

    # Selection

    def select_route(self, key: str) -> Route | None:
        """Make the route for `key` current; None if there is no such route."""
        route = self._aggregator.routes.get(key)
        self.current_route = route
        return route

    def select_marker(self, index: int) -> MarkerVM | None:
        """Select the marker with the given 1-based result index."""
        for marker in self.markers:
            if marker.index == index:
                self.current_marker = marker
                return marker
        return None

    def close_item(self) -> None:
        self.current_marker = None

    def single_item_link_params(self, marker: MarkerVM) -> dict[str, Any]:
        """Link parameters that reopen this search at the given item."""
        if self._descriptor is None:
            return {"id": marker.item_id, "i": marker.index}
        params = self._builder.to_link_params(self._descriptor)
        params["id"] = marker.item_id
        params["i"] = marker.index
        return params

    # State

    @property
    def state(self) -> SessionState:
        return self._aggregator.state

    @property
    def is_loading(self) -> bool:
        return self._aggregator.is_loading

    @property
    def percentage_loaded(self) -> int:
        return self._aggregator.percentage_loaded

    @property
    def matches_retrieved(self) -> int:
        return self._aggregator.matches_retrieved

    @property
    def total_matches(self) -> int:
        return self._aggregator.total_matches

    @property
    def route_keys(self) -> list[str]:
        return self._aggregator.route_keys

    @property
    def routes(self) -> RouteMap:
        return self._aggregator.routes

    @property
    def bounds(self) -> GeoBounds:
        return self._aggregator.bounds

    @property
    def previous_available_by_day(self) -> DayLink | None:
        session = self._aggregator.session
        if session is None or session.last_page is None:
            return None
        return session.last_page.previous_available_by_day

    @property
    def next_available_by_day(self) -> DayLink | None:
        session = self._aggregator.session
        if session is None or session.last_page is None:
            return None
        return session.last_page.next_available_by_day
