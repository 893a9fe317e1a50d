import pytest

from app.viewmodels.map_vm import MapVM
from core.errors import NetworkError
from core.models import ByDayCriteria, DayLink, NearbyCriteria, ResultPage, SearchKind
from core.services.session_aggregator import SessionState


class FakeRunner:
    def __init__(self) -> None:
        self.requests: list = []

    def request_page(self, generation, descriptor) -> None:
        self.requests.append((generation, descriptor))


class RecordingListener:
    def __init__(self) -> None:
        self.events: list = []

    def search_started(self, readable) -> None:
        self.events.append(("started", readable))

    def markers_added(self, markers) -> None:
        self.events.append(("markers", [m.index for m in markers]))

    def bounds_changed(self, bounds, fit) -> None:
        self.events.append(("bounds", fit))

    def search_completed(self, route_keys, bounds) -> None:
        self.events.append(("completed", route_keys))

    def search_failed(self, message) -> None:
        self.events.append(("failed", message))


@pytest.fixture
def vm(displayer):
    runner = FakeRunner()
    model = MapVM(runner, page_size=2, displayer=displayer)
    model.set_listener(RecordingListener())
    return model, runner


def test_requires_runner() -> None:
    with pytest.raises(RuntimeError):
        MapVM().search_with_text("x")


def test_text_search_pages_until_total(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("  beach ")
    assert model.readable_search_string == "'beach'"
    assert len(runner.requests) == 1
    generation, descriptor = runner.requests[0]
    assert descriptor.criteria.text == "beach"
    assert descriptor.first == 1

    model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 3))
    assert model.is_loading
    assert model.percentage_loaded == 67
    assert len(runner.requests) == 2
    assert runner.requests[1][1].first == 3

    model.on_page_loaded(generation, make_page([make_item("c", 1, 3.0, 3.0)], 3))
    assert not model.is_loading
    assert model.percentage_loaded == 100
    assert len(runner.requests) == 2
    assert model.route_keys == ["2020-05-01"]
    assert [m.index for m in model.markers] == [1, 2, 3]

    listener = model._listener
    assert listener.events[0] == ("started", "'beach'")
    assert ("bounds", True) in listener.events
    assert listener.events[-1] == ("completed", ["2020-05-01"])


def test_search_near_is_capped_and_never_fits(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_near(47.6, -122.3)
    generation, descriptor = runner.requests[0]
    assert descriptor.kind is SearchKind.NEARBY
    assert descriptor.criteria == NearbyCriteria(47.6, -122.3, 10.5)

    model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 5000))
    assert model.total_matches == 2000
    assert ("bounds", False) in model._listener.events


def test_new_search_ignores_pages_from_previous(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("one")
    old_generation = runner.requests[0][0]
    model.search_by_day(5, 1)
    new_generation, descriptor = runner.requests[1]
    assert descriptor.criteria == ByDayCriteria(5, 1)

    model.on_page_loaded(old_generation, make_page([make_item("a", 1, 1.0, 1.0)], 1))
    assert model.markers == []
    assert model.is_loading
    assert len(runner.requests) == 2

    model.on_page_loaded(new_generation, make_page([make_item("b", 1, 2.0, 2.0)], 1))
    assert [m.item_id for m in model.markers] == ["b"]


def test_failure_sets_page_error(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("x")
    generation = runner.requests[0][0]
    model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 10))
    model.on_page_failed(generation, NetworkError())

    assert model.state is SessionState.ERROR
    assert model.page_error == "Server not accessible"
    assert len(model.markers) == 2
    assert model._listener.events[-1] == ("failed", "Server not accessible")


def test_select_route_and_marker(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("x")
    generation = runner.requests[0][0]
    model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 2))

    route = model.select_route("2020-05-01")
    assert route is not None and route.points == [(1.0, 1.0), (2.0, 2.0)]
    assert model.current_route is route
    assert model.select_route("1999-01-01") is None

    marker = model.select_marker(2)
    assert marker is not None and marker.item_id == "b"
    assert model.single_item_link_params(marker) == {"t": "s", "q": "x", "id": "b", "i": 2}
    model.close_item()
    assert model.current_marker is None


def test_previous_and_next_day_links(vm) -> None:
    model, runner = vm
    assert not model.search_previous_day()

    model.search_by_day(3, 10)
    generation = runner.requests[0][0]
    page = ResultPage(
        items=[],
        total_matches=0,
        result_count=0,
        previous_available_by_day=DayLink(3, 2),
        next_available_by_day=DayLink(4, 1),
    )
    model.on_page_loaded(generation, page)
    assert model.next_available_by_day == DayLink(4, 1)

    assert model.search_previous_day()
    assert runner.requests[-1][1].criteria == ByDayCriteria(3, 2)


def test_cancel_stops_following_pages(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("x")
    generation = runner.requests[0][0]
    model.cancel()
    model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 10))
    assert len(runner.requests) == 1
    assert model.state is SessionState.IDLE


def test_follow_up_page_without_runner_raises(vm, make_item, make_page) -> None:
    model, runner = vm
    model.search_with_text("x")
    generation = runner.requests[0][0]
    model._runner = None
    with pytest.raises(RuntimeError):
        model.on_page_loaded(generation, make_page([make_item("a", 1, 1.0, 1.0), make_item("b", 1, 2.0, 2.0)], 10))
