"""Unit tests for pagination conventions."""

from __future__ import annotations

import pytest
from requests.structures import CaseInsensitiveDict

from synckit.clients.http import (
    LinkHeaderPager,
    ODataPager,
    PageMetaPager,
    PageRequest,
    Pager,
    SinglePagePager,
    build_pager,
)
from synckit.config.models import PagerConfig
from synckit.core.http import TransportResponse

URL = "https://api.example.test/v1/items"


def _response(headers: dict[str, str] | None = None, body=None) -> TransportResponse:
    return TransportResponse(status_code=200, url=URL, headers=CaseInsensitiveDict(headers or {}), body=body)


def _request(**kwargs) -> PageRequest:
    return PageRequest(method="GET", url=URL, **kwargs)


@pytest.mark.unit
class TestSinglePagePager:
    def test_mapping_is_one_entity(self):
        page = SinglePagePager().get_page({"id": 1}, _response(), _request())

        assert page.entities == [{"id": 1}]
        assert page.is_last_page is True
        assert page.count == 1

    def test_list_keeps_mappings_only(self):
        page = SinglePagePager().get_page([{"id": 1}, "noise", {"id": 2}], _response(), _request())

        assert page.entities == [{"id": 1}, {"id": 2}]

    def test_empty_body(self):
        assert SinglePagePager().get_page(None, _response(), _request()).entities == []


@pytest.mark.unit
class TestODataPager:
    def test_prepare_request_sets_prefer_header(self):
        request = ODataPager(max_page_size=50).prepare_request(_request(headers={"Accept": "application/json"}))

        assert request.headers == {"Accept": "application/json", "Prefer": "odata.maxpagesize=50"}

    def test_prepare_request_is_idempotent(self):
        pager = ODataPager(max_page_size=50)
        once = pager.prepare_request(_request())

        assert pager.prepare_request(once) == once

    def test_v4_prefix_from_header(self):
        data = {"value": [{"id": 1}], "@odata.nextLink": "https://api.example.test/v1/items?$skip=1"}

        page = ODataPager().get_page(data, _response({"OData-Version": "4.0"}), _request())

        assert page.entities == [{"id": 1}]
        assert page.next_url == "https://api.example.test/v1/items?$skip=1"
        assert page.is_last_page is False
        assert page.state["prefix"] == "@odata."

    def test_prefix_carries_over_from_previous_page(self):
        pager = ODataPager()
        first = pager.get_page(
            {"value": [{"id": 1}], "@odata.nextLink": "next"},
            _response({"OData-Version": "4.0"}),
            _request(),
        )

        second = pager.get_page({"value": [{"id": 2}]}, _response(), _request(), first)

        assert second.state["prefix"] == "@odata."
        assert second.is_last_page is True
        assert second.count == 2
        assert second.previous is first

    def test_older_versions_use_bare_prefix(self):
        data = {"value": [], "@nextLink": "https://api.example.test/next", "@odata.nextLink": "ignored"}

        page = ODataPager().get_page(data, _response({"OData-Version": "3.0"}), _request())

        assert page.next_url == "https://api.example.test/next"

    def test_configured_prefix_wins(self):
        data = {"value": [], "odata.nextLink": "https://api.example.test/next"}

        page = ODataPager(prefix="odata.").get_page(data, _response({"OData-Version": "4.0"}), _request())

        assert page.next_url == "https://api.example.test/next"


@pytest.mark.unit
class TestLinkHeaderPager:
    def test_next_link_is_resolved_against_request(self):
        headers = {"Link": '</v1/items?page=2>; rel="next", </v1/items?page=9>; rel="last"'}

        page = LinkHeaderPager().get_page([{"id": 1}], _response(headers), _request())

        assert page.next_url == "https://api.example.test/v1/items?page=2"
        assert page.entities == [{"id": 1}]

    def test_without_next_link_is_last_page(self):
        headers = {"Link": '<https://api.example.test/v1/items?page=1>; rel="prev"'}

        page = LinkHeaderPager().get_page([{"id": 3}], _response(headers), _request())

        assert page.is_last_page is True
        assert page.next_url is None

    def test_items_key(self):
        page = LinkHeaderPager(items_key="data").get_page(
            {"data": [{"id": 1}], "meta": [{"id": "no"}]},
            _response(),
            _request(),
        )

        assert page.entities == [{"id": 1}]


@pytest.mark.unit
class TestPageMetaPager:
    def test_prepare_request_adds_limit_once(self):
        pager = PageMetaPager(page_size=25)

        request = pager.prepare_request(_request(params={"q": "x"}))

        assert request.params == {"q": "x", "limit": 25}
        assert pager.prepare_request(_request(params={"limit": 5})).params == {"limit": 5}

    def test_next_from_page_meta(self):
        data = {"molecules": [{"id": 1}, {"id": 2}], "page_meta": {"next": "/v1/items?offset=2", "total_count": 3}}

        page = PageMetaPager().get_page(data, _response(), _request())

        assert page.entities == [{"id": 1}, {"id": 2}]
        assert page.next_url == "https://api.example.test/v1/items?offset=2"

    def test_null_next_is_last_page(self):
        page = PageMetaPager().get_page({"items": [{"id": 3}], "page_meta": {"next": None}}, _response(), _request())

        assert page.is_last_page is True


@pytest.mark.unit
@pytest.mark.parametrize(
    ("config", "expected"),
    [
        (None, SinglePagePager),
        (PagerConfig(), SinglePagePager),
        (PagerConfig(kind="odata", max_page_size=10), ODataPager),
        (PagerConfig(kind="link_header"), LinkHeaderPager),
        (PagerConfig(kind="page_meta", max_page_size=10, limit_param="size"), PageMetaPager),
    ],
)
def test_build_pager(config, expected):
    pager = build_pager(config)

    assert isinstance(pager, expected)
    assert isinstance(pager, Pager)
