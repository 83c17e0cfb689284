"""Tests for pagination.

The driver is exercised on its own with injected fetchers and clocks, and
end to end through the client with an httpx.MockTransport that serves the
pages of a measurement listing.
"""

import httpx
import pytest

from atlas_client.atlasapi import errors, types
from atlas_client.atlasapi.client import AtlasClient
from atlas_client.atlasapi.paging import Paged, PaginationDriver
from atlas_client.atlasapi.request import Request
from atlas_client.atlasapi.routes import Category, Op, route_for
from atlas_client.atlasapi.transport import HttpxTransport

ENDPOINT = "https://atlas.test/api/v2"
LISTING = f"{ENDPOINT}/measurements/"


def _page_body(start: int, next_url: str | None) -> dict:
    return {
        "count": 30,
        "next": next_url,
        "previous": None,
        "results": [{"id": i, "type": "ping"} for i in range(start, start + 10)],
    }


class PagedListing:
    """Serves three pages of ten measurements keyed on the cursor."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        cursor = request.url.params.get("cursor")
        if cursor is not None and cursor == self.fail_on:
            return httpx.Response(500, content=b"Internal Server Error")
        if cursor is None:
            return httpx.Response(200, json=_page_body(0, f"{LISTING}?status=2&cursor=c2"))
        if cursor == "c2":
            return httpx.Response(200, json=_page_body(10, f"{LISTING}?status=2&cursor=c3"))
        return httpx.Response(200, json=_page_body(20, None))


def make_client(handler) -> AtlasClient:
    transport = HttpxTransport(endpoint=ENDPOINT, transport=httpx.MockTransport(handler))
    return AtlasClient(transport=transport)


def _list_request() -> Request:
    return Request(
        Category.MEASUREMENTS,
        Op.LIST,
        route_for(Category.MEASUREMENTS, Op.LIST),
        options=(("status", "2"),),
    )


# ---------------------------------------------------------------------------
# Full walks
# ---------------------------------------------------------------------------


def test_list_follows_every_page_in_order():
    """Three pages of ten give thirty items in upstream order."""
    listing = PagedListing()
    client = make_client(listing)

    result = client.measurement().with_option("status", 2).list()

    assert isinstance(result, Paged)
    assert len(result) == 30
    assert result.pages == 3
    assert [m.id for m in result] == list(range(30))
    assert len(listing.requests) == 3


def test_successive_pages_carry_exactly_one_cursor():
    """The cursor of each page replaces the previous one."""
    listing = PagedListing()
    client = make_client(listing)

    list(client.measurement().with_option("status", 2).list())

    queries = [r.url.params for r in listing.requests]
    assert queries[0].get_list("cursor") == []
    assert queries[1].get_list("cursor") == ["c2"]
    assert queries[2].get_list("cursor") == ["c3"]
    assert all(q.get_list("status") == ["2"] for q in queries)


def test_paged_result_is_consumed_once():
    """Iterating a second time yields nothing."""
    client = make_client(PagedListing())

    result = client.measurement().list()
    first = list(result)

    assert len(first) == 30
    assert list(result) == []


def test_empty_listing_is_not_an_error():
    """A listing with no results yields an empty sequence."""
    empty = {"count": 0, "next": None, "previous": None, "results": []}
    client = make_client(lambda request: httpx.Response(200, json=empty))

    result = client.probe().with_option("country_code", "AQ").list()

    assert len(result) == 0
    assert result.pages == 1


def test_page_number_links_are_followed():
    """Listings paginated with ``page`` rather than ``cursor`` work too."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json={"next": None, "results": [{"id": 2}]})
        return httpx.Response(
            200, json={"next": f"{ENDPOINT}/anchors/?page=2", "results": [{"id": 1}]}
        )

    client = make_client(handler)

    assert [a.id for a in client.anchor().list()] == [1, 2]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


def test_mid_walk_failure_returns_no_partial_result():
    """A failing second page aborts the whole listing."""
    listing = PagedListing(fail_on="c2")
    client = make_client(listing)

    with pytest.raises(errors.UpstreamError) as excinfo:
        client.measurement().list()

    assert excinfo.value.status == 500
    assert len(listing.requests) == 2


def test_stream_yields_items_before_a_later_failure():
    """Streaming hands out the first page before the second one fails."""
    client = make_client(PagedListing(fail_on="c2"))
    seen = []

    with pytest.raises(errors.UpstreamError):
        for measurement in client.measurement().stream():
            seen.append(measurement.id)

    assert seen == list(range(10))


def test_next_link_without_cursor_is_malformed():
    """A next link the driver cannot follow is reported, not looped on."""
    body = {"next": f"{LISTING}?status=2", "results": [{"id": 1}]}
    client = make_client(lambda request: httpx.Response(200, json=body))

    with pytest.raises(errors.MalformedResponse) as excinfo:
        client.measurement().list()

    assert excinfo.value.payload == f"{LISTING}?status=2".encode()


def test_results_not_matching_item_model_are_malformed():
    """An item missing its id fails the page decode."""
    body = {"next": None, "results": [{"type": "ping"}]}
    client = make_client(lambda request: httpx.Response(200, json=body))

    with pytest.raises(errors.MalformedResponse):
        client.measurement().list()


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def _endless_fetch(fetched: list):
    """Fetcher whose pages always link to another one."""

    def fetch(request: Request, timeout: float | None) -> types.Page[types.Measurement]:
        fetched.append(request)
        return types.Page[types.Measurement](
            next=f"{LISTING}?cursor=n{len(fetched)}",
            results=[types.Measurement(id=len(fetched))],
        )

    return fetch


def _last_page_fetch(timeouts: list):
    """Fetcher serving a single, final page."""

    def fetch(request: Request, timeout: float | None) -> types.Page[types.Measurement]:
        timeouts.append(timeout)
        return types.Page[types.Measurement](results=[types.Measurement(id=1)])

    return fetch


def test_driver_requests_pages_lazily():
    """pages() fetches the next page only when asked for it."""
    fetched = []

    pages = PaginationDriver(_endless_fetch(fetched)).pages(_list_request())
    next(pages)
    next(pages)

    assert len(fetched) == 2
    assert fetched[1].options == (("status", "2"), ("cursor", "n1"))


def test_driver_deadline_checked_between_pages():
    """The next page is not requested once the deadline has passed."""
    fetched = []
    # start, before page 1, after page 1, before page 2
    ticks = iter([0.0, 0.0, 5.0, 11.0])
    driver = PaginationDriver(
        _endless_fetch(fetched), deadline=10.0, clock=lambda: next(ticks)
    )

    with pytest.raises(errors.TransportFailure, match="deadline"):
        driver.drive(_list_request())

    assert len(fetched) == 1


def test_driver_deadline_catches_slow_final_page():
    """A page that returns after the deadline fails the walk."""
    fetched = []
    # start, before page 1, after page 1, before page 2, after page 2
    ticks = iter([0.0, 0.0, 5.0, 5.0, 100.0])
    driver = PaginationDriver(
        _endless_fetch(fetched), deadline=10.0, clock=lambda: next(ticks)
    )

    with pytest.raises(errors.TransportFailure, match="deadline"):
        driver.drive(_list_request())

    assert len(fetched) == 2


def test_driver_deadline_catches_slow_single_page():
    """Even a one-page listing fails when that page overruns the deadline."""
    timeouts = []
    ticks = iter([0.0, 0.0, 50.0])
    driver = PaginationDriver(
        _last_page_fetch(timeouts), deadline=10.0, clock=lambda: next(ticks)
    )

    with pytest.raises(errors.TransportFailure):
        driver.drive(_list_request())


def test_driver_passes_remaining_time_to_fetch():
    """Each fetch is bounded by the time left before the deadline."""
    timeouts = []
    ticks = iter([0.0, 4.0, 5.0])
    driver = PaginationDriver(
        _last_page_fetch(timeouts), deadline=10.0, clock=lambda: next(ticks)
    )

    result = driver.drive(_list_request())

    assert len(result) == 1
    assert timeouts == [6.0]


def test_driver_without_deadline_never_reads_clock_after_start():
    """With no deadline the clock is only read once and fetches are unbounded."""
    calls = []
    timeouts = []

    def clock() -> float:
        calls.append(None)
        return 0.0

    result = PaginationDriver(_last_page_fetch(timeouts), clock=clock).drive(
        _list_request()
    )

    assert len(result) == 1
    assert len(calls) == 1
    assert timeouts == [None]


def test_deadline_bounds_the_transport_timeout():
    """Pages fetched through the client carry the remaining time as timeout."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"]["read"])
        return httpx.Response(200, json={"next": None, "results": [{"id": 1}]})

    transport = HttpxTransport(endpoint=ENDPOINT, transport=httpx.MockTransport(handler))
    client = AtlasClient(transport=transport, pagination_deadline=0.5)

    client.anchor().list()

    assert len(seen) == 1
    assert 0 < seen[0] <= 0.5


# ---------------------------------------------------------------------------
# Cursor extraction
# ---------------------------------------------------------------------------


def test_next_cursor_prefers_cursor_parameter():
    """The cursor parameter wins over a page number."""
    page = types.Page[types.Probe](next=f"{ENDPOINT}/probes/?page=3&cursor=abc")

    assert page.next_cursor() == ("cursor", "abc")


def test_next_cursor_is_none_on_last_page():
    """No next link means no further page."""
    assert types.Page[types.Probe]().next_cursor() is None


def test_next_cursor_without_known_parameter_raises():
    """An unusable link is a ValueError for the driver to translate."""
    page = types.Page[types.Probe](next=f"{ENDPOINT}/probes/?offset=100")

    with pytest.raises(ValueError, match="No cursor"):
        page.next_cursor()
