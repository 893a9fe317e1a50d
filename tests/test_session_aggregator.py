import pytest

from core.errors import NetworkError, ServerError
from core.models import SearchDescriptor, SearchKind, TextCriteria
from core.services.session_aggregator import SessionAggregator, SessionState


def _descriptor(page_size: int = 10) -> SearchDescriptor:
    return SearchDescriptor(
        kind=SearchKind.TEXT,
        criteria=TextCriteria(text="beach"),
        properties=("id", "createdDate", "latitude", "longitude"),
        page_size=page_size,
    )


def _geo_items(make_item, start: int, count: int) -> list:
    return [make_item(str(i), day=1, lat=float(i), lon=float(i)) for i in range(start, start + count)]


class RecordingSink:
    def __init__(self) -> None:
        self.markers: list = []
        self.bounds: list = []
        self.completed: list = []
        self.failed: list = []

    def markers_added(self, markers) -> None:
        self.markers.extend(markers)

    def bounds_changed(self, bounds, fit) -> None:
        self.bounds.append((bounds, fit))

    def session_completed(self, routes, bounds) -> None:
        self.completed.append((routes, bounds))

    def session_failed(self, message) -> None:
        self.failed.append(message)


def test_start_session_resets_cursor_and_state() -> None:
    agg = SessionAggregator()
    descriptor = _descriptor()
    descriptor.first = 41
    request = agg.start_session(descriptor)
    assert request.generation == 1
    assert request.descriptor.first == 1
    assert descriptor.first == 1
    assert agg.state is SessionState.LOADING
    assert agg.is_loading
    assert agg.bounds.is_empty
    assert len(agg.routes) == 0


def test_idle_before_any_session() -> None:
    agg = SessionAggregator()
    assert agg.state is SessionState.IDLE
    assert not agg.is_loading
    assert agg.percentage_loaded == 100


def test_pagination_terminates_after_short_page(make_item, make_page, fake_fetch, displayer) -> None:
    fetch = fake_fetch(
        {
            1: make_page(_geo_items(make_item, 0, 10), 25),
            11: make_page(_geo_items(make_item, 10, 10), 25),
            21: make_page(_geo_items(make_item, 20, 5), 25),
        }
    )
    agg = SessionAggregator(displayer)
    outcomes = list(agg.run(fetch, _descriptor()))

    assert fetch.calls == [1, 11, 21]
    assert len(outcomes) == 3
    assert [o.done for o in outcomes] == [False, False, True]
    assert agg.state is SessionState.DONE
    assert agg.matches_retrieved == 25
    assert agg.total_matches == 25
    assert len(agg.markers) == 25


def test_empty_result_is_done_after_one_fetch(make_page, fake_fetch) -> None:
    fetch = fake_fetch({1: make_page([], 0)})
    agg = SessionAggregator()
    list(agg.run(fetch, _descriptor()))
    assert fetch.calls == [1]
    assert agg.state is SessionState.DONE
    assert agg.matches_retrieved == 0


def test_zero_result_page_stops_even_below_total(make_item, make_page, fake_fetch) -> None:
    fetch = fake_fetch({1: make_page(_geo_items(make_item, 0, 10), 30), 11: make_page([], 30)})
    agg = SessionAggregator()
    list(agg.run(fetch, _descriptor()))
    assert fetch.calls == [1, 11]
    assert agg.state is SessionState.DONE


def test_cap_limits_reported_total_and_fetching(make_item, make_page, fake_fetch) -> None:
    pages = {first: make_page(_geo_items(make_item, first, 20), 10000) for first in range(1, 200, 20)}
    fetch = fake_fetch(pages)
    agg = SessionAggregator()
    list(agg.run(fetch, _descriptor(page_size=20), max_matches_allowed=50))

    assert fetch.calls == [1, 21, 41]
    assert agg.total_matches == 50
    assert agg.matches_retrieved >= 50
    assert agg.state is SessionState.DONE


def test_single_page_scenario(make_item, make_page, fake_fetch, displayer) -> None:
    items = [
        make_item("a", day=1, lat=1.0, lon=1.0),
        make_item("b", day=1, lat=1.0, lon=1.0),
        make_item("c", day=1, lat=2.0, lon=2.0),
        make_item("d", day=2, lat=3.0, lon=3.0),
    ]
    agg = SessionAggregator(displayer)
    list(agg.run(fake_fetch({1: make_page(items, 4)}), _descriptor()))

    assert agg.route_keys == ["2020-05-01"]
    assert agg.routes["2020-05-01"].points == [(1.0, 1.0), (2.0, 2.0)]
    assert agg.bounds.south_west == (1.0, 1.0)
    assert agg.bounds.north_east == (3.0, 3.0)


def test_segmentation_carries_across_pages(make_item, make_page, fake_fetch, displayer) -> None:
    fetch = fake_fetch(
        {
            1: make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 4),
            3: make_page([make_item("c", 2, 3.0, 3.0), make_item("d", 2, 4.0, 4.0)], 4),
        }
    )
    agg = SessionAggregator(displayer)
    list(agg.run(fetch, _descriptor(page_size=2)))

    assert fetch.calls == [1, 3]
    assert agg.route_keys == ["2020-05-01", "2020-05-02"]
    assert agg.routes["2020-05-01"].points == [(1.0, 1.0), (2.0, 2.0)]
    assert agg.routes["2020-05-02"].points == [(3.0, 3.0), (4.0, 4.0)]


def test_route_spanning_page_boundary(make_item, make_page, fake_fetch, displayer) -> None:
    fetch = fake_fetch(
        {
            1: make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 4),
            3: make_page([make_item("c", 1, 3.0, 3.0), make_item("d", 2, 4.0, 4.0)], 4),
        }
    )
    agg = SessionAggregator(displayer)
    list(agg.run(fetch, _descriptor(page_size=2)))
    assert agg.route_keys == ["2020-05-01"]
    assert agg.routes["2020-05-01"].points == [(1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]


def test_marker_index_counts_ungeotagged_items(make_item, make_page) -> None:
    agg = SessionAggregator()
    request = agg.start_session(_descriptor(page_size=3))
    page = make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1), make_item("c", 1, 2.0, 2.0)], 6)
    outcome = agg.on_page_arrived(request.generation, page)
    assert [m.index for m in outcome.markers] == [1, 3]

    second = outcome.next_request
    assert second is not None and second.descriptor.first == 4
    page2 = make_page([make_item("d", 1), make_item("e", 1, 3.0, 3.0), make_item("f", 1)], 6)
    outcome2 = agg.on_page_arrived(second.generation, page2)
    assert [m.index for m in outcome2.markers] == [5]


def test_fit_bounds_only_after_first_page(make_item, make_page) -> None:
    sink = RecordingSink()
    agg = SessionAggregator(sink=sink)
    request = agg.start_session(_descriptor(page_size=1))
    outcome = agg.on_page_arrived(request.generation, make_page([make_item("a", 1, 1.0, 1.0)], 2))
    assert outcome.fit_bounds
    outcome = agg.on_page_arrived(outcome.next_request.generation, make_page([make_item("b", 1, 2.0, 2.0)], 2))
    assert not outcome.fit_bounds
    assert [fit for _, fit in sink.bounds] == [True, False]
    assert len(sink.completed) == 1


def test_fit_bounds_disabled_by_flag(make_item, make_page) -> None:
    agg = SessionAggregator()
    request = agg.start_session(_descriptor(), fit_bounds_on_first_page=False)
    outcome = agg.on_page_arrived(request.generation, make_page([make_item("a", 1, 1.0, 1.0)], 1))
    assert not outcome.fit_bounds


def test_stale_page_is_ignored(make_item, make_page) -> None:
    agg = SessionAggregator()
    old = agg.start_session(_descriptor())
    new = agg.start_session(_descriptor())
    assert new.generation > old.generation

    assert agg.on_page_arrived(old.generation, make_page([make_item("a", 1, 5.0, 5.0)], 1)) is None
    assert agg.bounds.is_empty
    assert agg.markers == []
    assert agg.state is SessionState.LOADING

    agg.on_page_error(old.generation, NetworkError())
    assert agg.state is SessionState.LOADING


def test_cancel_discards_late_pages(make_item, make_page) -> None:
    agg = SessionAggregator()
    request = agg.start_session(_descriptor())
    agg.cancel()
    assert agg.on_page_arrived(request.generation, make_page([make_item("a", 1, 1.0, 1.0)], 1)) is None
    assert agg.state is SessionState.IDLE


def test_error_keeps_partial_results(make_item, make_page, fake_fetch, displayer) -> None:
    sink = RecordingSink()
    fetch = fake_fetch(
        {1: make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 4)},
        errors={3: ServerError(500, "The server failed with: 500; boom")},
    )
    agg = SessionAggregator(displayer, sink=sink)
    outcomes = list(agg.run(fetch, _descriptor(page_size=2)))

    assert len(outcomes) == 1
    assert fetch.calls == [1, 3]
    assert agg.state is SessionState.ERROR
    assert not agg.is_loading
    assert agg.error == "The server failed with: 500; boom"
    assert sink.failed == ["The server failed with: 500; boom"]
    assert len(agg.markers) == 2
    assert agg.bounds.north_east == (2.0, 2.0)
    # No finalize on failure: the in-progress segment is not committed
    assert len(agg.routes) == 0


def test_late_page_after_error_is_ignored(make_item, make_page) -> None:
    agg = SessionAggregator()
    request = agg.start_session(_descriptor())
    agg.on_page_error(request.generation, NetworkError())
    assert agg.error == "Server not accessible"
    assert agg.on_page_arrived(request.generation, make_page([make_item("a", 1, 1.0, 1.0)], 1)) is None
    assert agg.state is SessionState.ERROR


def test_new_session_discards_previous_results(make_item, make_page, fake_fetch, displayer) -> None:
    agg = SessionAggregator(displayer)
    items = [make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)]
    list(agg.run(fake_fetch({1: make_page(items, 2)}), _descriptor()))
    assert len(agg.routes) == 1

    agg.start_session(_descriptor())
    assert len(agg.routes) == 0
    assert agg.markers == []
    assert agg.bounds.is_empty
    assert agg.matches_retrieved == 0


def test_percentage_loaded_while_loading(make_item, make_page) -> None:
    agg = SessionAggregator()
    request = agg.start_session(_descriptor())
    assert agg.percentage_loaded == 0
    agg.on_page_arrived(request.generation, make_page(_geo_items(make_item, 0, 10), 40))
    assert agg.percentage_loaded == 25


def test_run_stops_when_superseded(make_item, make_page, fake_fetch) -> None:
    fetch = fake_fetch(
        {
            1: make_page(_geo_items(make_item, 0, 10), 30),
            11: make_page(_geo_items(make_item, 10, 10), 30),
        }
    )
    agg = SessionAggregator()
    pages = agg.run(fetch, _descriptor())
    next(pages)
    agg.start_session(_descriptor())
    with pytest.raises(StopIteration):
        next(pages)
    assert fetch.calls == [1]


def test_unexpected_fetch_failure_ends_session_and_propagates() -> None:
    sink = RecordingSink()
    agg = SessionAggregator(sink=sink)

    def fetch(descriptor):
        raise KeyError("decoder bug")

    with pytest.raises(KeyError):
        list(agg.run(fetch, _descriptor()))
    assert agg.state is SessionState.ERROR
    assert not agg.is_loading
    assert len(sink.failed) == 1
