"""Page extraction strategies for paginated HTTP backends.

A pager turns one decoded response into a :class:`Page`: the entity payloads
it carries, whether it is the last page, and what to send next. Pagers are
stateless; continuation state travels on the previous page.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urljoin

from requests.utils import parse_header_links

from synckit.config.models.sync import PagerConfig
from synckit.core.http import TransportResponse

__all__ = [
    "LinkHeaderPager",
    "ODataPager",
    "Page",
    "PageMetaPager",
    "PageRequest",
    "Pager",
    "SinglePagePager",
    "build_pager",
]


@dataclass(slots=True, frozen=True)
class PageRequest:
    """The request used to fetch one page."""

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    body: Any = None


@dataclass(slots=True, frozen=True)
class Page:
    """Entities extracted from one response plus what is needed to continue."""

    entities: list[dict[str, Any]]
    is_last_page: bool = True
    next_url: str | None = None
    next_data: Any = None
    next_headers: Mapping[str, str] | None = None
    previous: Page | None = field(default=None, repr=False)
    count: int = 0
    state: Mapping[str, Any] = field(default_factory=dict)


@runtime_checkable
class Pager(Protocol):
    """Backend-specific pagination convention."""

    def prepare_request(self, request: PageRequest) -> PageRequest:
        """Rewrite the first request of an operation. Must be idempotent."""

    def get_page(
        self,
        data: Any,
        response: TransportResponse,
        request: PageRequest,
        previous: Page | None = None,
    ) -> Page:
        """Extract a page from a decoded response body."""


def _build_page(
    entities: list[dict[str, Any]],
    previous: Page | None,
    *,
    next_url: str | None = None,
    next_data: Any = None,
    next_headers: Mapping[str, str] | None = None,
    state: Mapping[str, Any] | None = None,
) -> Page:
    total = (previous.count if previous is not None else 0) + len(entities)
    return Page(
        entities=entities,
        is_last_page=next_url is None,
        next_url=next_url,
        next_data=next_data,
        next_headers=next_headers,
        previous=previous,
        count=total,
        state=dict(state or {}),
    )


def _mapping_items(value: Any) -> list[dict[str, Any]] | None:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [dict(item) for item in value if isinstance(item, Mapping)]
    return None


def _extract_items(data: Any, items_key: str | None, *, skip: Sequence[str] = ()) -> list[dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, Mapping):
        if items_key is not None:
            return _mapping_items(data.get(items_key)) or []
        for key, value in data.items():
            if key in skip:
                continue
            items = _mapping_items(value)
            if items:
                return items
        return []
    return _mapping_items(data) or []


def _clean_link(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    return candidate or None


class SinglePagePager:
    """Treat the whole response body as the only page."""

    def prepare_request(self, request: PageRequest) -> PageRequest:
        return request

    def get_page(
        self,
        data: Any,
        response: TransportResponse,
        request: PageRequest,
        previous: Page | None = None,
    ) -> Page:
        if isinstance(data, Mapping):
            entities = [dict(data)]
        else:
            entities = _mapping_items(data) or []
        return _build_page(entities, previous)


class ODataPager:
    """OData ``value`` arrays with ``nextLink`` annotations."""

    def __init__(self, max_page_size: int | None = None, prefix: str | None = None) -> None:
        self.max_page_size = max_page_size
        self.prefix = prefix

    def prepare_request(self, request: PageRequest) -> PageRequest:
        if self.max_page_size is None:
            return request
        headers = dict(request.headers or {})
        headers["Prefer"] = f"odata.maxpagesize={self.max_page_size}"
        return replace(request, headers=headers)

    def _resolve_prefix(self, response: TransportResponse, previous: Page | None) -> str:
        if self.prefix:
            return self.prefix
        version = response.header("OData-Version")
        if version is not None:
            return "@odata." if version.strip() == "4.0" else "@"
        if previous is not None and "prefix" in previous.state:
            return str(previous.state["prefix"])
        return "@"

    def get_page(
        self,
        data: Any,
        response: TransportResponse,
        request: PageRequest,
        previous: Page | None = None,
    ) -> Page:
        prefix = self._resolve_prefix(response, previous)
        payload: Mapping[str, Any] = data if isinstance(data, Mapping) else {}
        entities = _mapping_items(payload.get("value")) or []
        return _build_page(
            entities,
            previous,
            next_url=_clean_link(payload.get(f"{prefix}nextLink")),
            state={"prefix": prefix},
        )


class LinkHeaderPager:
    """RFC 8288 ``Link: <...>; rel="next"`` pagination."""

    def __init__(self, items_key: str | None = None) -> None:
        self.items_key = items_key

    def prepare_request(self, request: PageRequest) -> PageRequest:
        return request

    def get_page(
        self,
        data: Any,
        response: TransportResponse,
        request: PageRequest,
        previous: Page | None = None,
    ) -> Page:
        next_url: str | None = None
        header = response.header("Link")
        if header:
            for link in parse_header_links(header):
                if link.get("rel") == "next" and link.get("url"):
                    next_url = urljoin(request.url, link["url"])
                    break
        return _build_page(_extract_items(data, self.items_key), previous, next_url=next_url)


class PageMetaPager:
    """Payloads that advertise the next page under ``page_meta.next``."""

    def __init__(
        self,
        page_size: int | None = None,
        limit_param: str = "limit",
        items_key: str | None = None,
    ) -> None:
        self.page_size = page_size
        self.limit_param = limit_param
        self.items_key = items_key

    def prepare_request(self, request: PageRequest) -> PageRequest:
        if self.page_size is None or not self.limit_param:
            return request
        params = dict(request.params or {})
        params.setdefault(self.limit_param, self.page_size)
        return replace(request, params=params)

    def get_page(
        self,
        data: Any,
        response: TransportResponse,
        request: PageRequest,
        previous: Page | None = None,
    ) -> Page:
        next_url: str | None = None
        if isinstance(data, Mapping):
            page_meta = data.get("page_meta")
            if isinstance(page_meta, Mapping):
                candidate = _clean_link(page_meta.get("next"))
                if candidate is not None:
                    next_url = urljoin(request.url, candidate)
        entities = _extract_items(data, self.items_key, skip=("page_meta",))
        return _build_page(entities, previous, next_url=next_url)


def build_pager(config: PagerConfig | None) -> Pager:
    """Instantiate the pager described by ``config``."""

    if config is None or config.kind == "none":
        return SinglePagePager()
    if config.kind == "odata":
        return ODataPager(max_page_size=config.max_page_size, prefix=config.prefix)
    if config.kind == "link_header":
        return LinkHeaderPager(items_key=config.items_key)
    if config.kind == "page_meta":
        return PageMetaPager(
            page_size=config.max_page_size,
            limit_param=config.limit_param,
            items_key=config.items_key,
        )
    msg = f"Unsupported pager kind: {config.kind!r}"
    raise ValueError(msg)
