from __future__ import annotations

import math
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from fastly_sdk import Client, DecodeError, HTTPError, ListOptions
from fastly_sdk.paginator import link_pages
from sample_models import Service

PAGE_URL = "https://api.example.com/services?page={page}&per_page={per_page}"


def _link(rels: Dict[str, int], per_page: int = 100) -> str:
    return ", ".join(f'<{PAGE_URL.format(page=page, per_page=per_page)}>; rel="{rel}"' for rel, page in rels.items())


def _pages_handler(total: int, per_page: int, fail: Optional[Dict[int, httpx.Response]] = None):
    """Serve ``total`` services ``per_page`` at a time with next/last Link relations."""
    last = max(math.ceil(total / per_page), 1)
    fail = dict(fail or {})

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        if page in fail:
            return fail.pop(page)
        start = (page - 1) * per_page
        items = [{"id": str(i), "name": f"svc-{i}"} for i in range(start, min(start + per_page, total))]
        rels = {"last": last}
        if page < last:
            rels["next"] = page + 1
        return httpx.Response(200, json=items, headers={"Link": _link(rels, per_page)})

    return handler


def _requested_pages(sent: List[httpx.Request]) -> List[int]:
    return [int(request.url.params["page"]) for request in sent]


def test_link_header_scenario(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    client = make_client(_pages_handler(total=5, per_page=2))
    pager = client.paginate("/services", Service, ListOptions(per_page=2))

    assert pager.has_next()
    first = pager.get_next()
    assert [service.name for service in first] == ["svc-0", "svc-1"]
    assert pager.last_page == 3
    assert pager.next_page == 2
    assert pager.remaining() == 2

    pager.get_next()
    pager.get_next()

    assert not pager.has_next()
    assert pager.remaining() == 0
    assert _requested_pages(sent) == [1, 2, 3]


@pytest.mark.parametrize("total, per_page", [(1, 1), (5, 2), (6, 2), (100, 7), (250, 100)])
def test_termination(make_client: Callable[..., Client], total: int, per_page: int) -> None:
    client = make_client(_pages_handler(total, per_page))
    pager = client.paginate("/services", Service, ListOptions(per_page=per_page))

    calls = 0
    seen = 0
    while pager.has_next():
        seen += len(pager.get_next())
        calls += 1

    assert calls == math.ceil(total / per_page)
    assert seen == total
    assert pager.remaining() == 0


def test_failed_fetch_requests_same_page(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    fail = {2: httpx.Response(503, json={"msg": "unavailable"})}
    client = make_client(_pages_handler(total=6, per_page=2, fail=fail))
    pager = client.paginate("/services", Service, ListOptions(per_page=2))

    pager.get_next()
    with pytest.raises(HTTPError):
        pager.get_next()
    assert pager.current_page == 1
    assert pager.remaining() == 2

    pager.get_next()
    assert _requested_pages(sent) == [1, 2, 2]
    assert pager.current_page == 2


def test_decode_failure_requests_same_page(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    fail = {1: httpx.Response(200, content=b"[{", headers={"Link": _link({"last": 2, "next": 2})})}
    client = make_client(_pages_handler(total=3, per_page=2, fail=fail))
    pager = client.paginate("/services", Service, ListOptions(per_page=2))

    with pytest.raises(DecodeError):
        pager.get_next()
    assert not pager.consumed
    assert pager.last_page == 0

    pager.get_next()
    assert _requested_pages(sent) == [1, 1]


def test_single_page_without_link(make_client: Callable[..., Client]) -> None:
    client = make_client(lambda request: httpx.Response(200, json=[{"id": "1"}]))
    pager = client.paginate("/services", Service)

    assert len(pager.get_next()) == 1
    assert not pager.has_next()
    assert pager.remaining() == 0


def test_next_without_last(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        headers = {"Link": _link({"next": page + 1})} if page == 1 else {}
        return httpx.Response(200, json=[{"id": str(page)}], headers=headers)

    pager = make_client(handler).paginate("/services", Service)

    pager.get_next()
    assert pager.has_next()
    assert pager.remaining() == 1
    pager.get_next()
    assert not pager.has_next()
    assert _requested_pages(sent) == [1, 2]


def test_query_parameters(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    client = make_client(lambda request: httpx.Response(200, json=[]))
    options = ListOptions(page=4, per_page=500, sort="name", direction="descend", params={"filter[type]": "vcl"})

    client.paginate("/services", Service, options).get_next()

    params = sent[0].url.params
    assert params["page"] == "4"
    assert params["per_page"] == "100"
    assert params["sort"] == "name"
    assert params["direction"] == "descend"
    assert params["filter[type]"] == "vcl"
    assert sent[0].method == "GET"


def test_default_page_size(make_client: Callable[..., Client], sent: List[httpx.Request]) -> None:
    client = make_client(lambda request: httpx.Response(200, json=[]))
    client.paginate("/services", Service).get_next()

    assert sent[0].url.params["page"] == "1"
    assert sent[0].url.params["per_page"] == "100"
    assert "sort" not in sent[0].url.params


def test_starting_page_counts_towards_last(make_client: Callable[..., Client]) -> None:
    client = make_client(_pages_handler(total=6, per_page=2))
    pager = client.paginate("/services", Service, ListOptions(page=3, per_page=2))

    pager.get_next()
    assert pager.current_page == 3
    assert not pager.has_next()


def test_iteration(make_client: Callable[..., Client]) -> None:
    client = make_client(_pages_handler(total=5, per_page=2))
    names = [service.name for service in client.paginate("/services", Service, ListOptions(per_page=2))]
    assert names == [f"svc-{i}" for i in range(5)]


def test_wrapped_list(make_client: Callable[..., Client]) -> None:
    client = make_client(lambda request: httpx.Response(200, json={"data": [{"id": "a"}]}))
    pager = client.paginate("/services", Service, key="data")
    assert pager.get_next() == [Service(id="a")]


def test_link_pages_ignores_unusable_entries() -> None:
    response = httpx.Response(
        200,
        headers={
            "Link": '<https://api.example.com/x?page=2>; rel="next", '
            '<https://api.example.com/x?page=abc>; rel="last", '
            '<https://api.example.com/x>; rel="first"'
        },
    )
    assert link_pages(response) == {"next": 2}
