"""Drive a :class:`Pager` over an :class:`HttpTransport` until exhaustion."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from structlog.stdlib import BoundLogger

from synckit.core.http import HttpTransport
from synckit.core.logging import LogEvents, UnifiedLogger

from .pagers import Page, PageRequest, Pager

__all__ = ["Paginator"]


class Paginator:
    """Iterate over HTTP pages in arrival order."""

    def __init__(self, *, logger: BoundLogger | None = None) -> None:
        self._log = logger or UnifiedLogger.get(__name__).bind(component="clients.paginator")

    def iterate_pages(
        self,
        transport: HttpTransport,
        request: PageRequest,
        pager: Pager,
    ) -> Iterator[Page]:
        """Yield pages until the pager reports the last one."""

        pending = pager.prepare_request(
            PageRequest(
                method=request.method,
                url=transport.resolve_url(request.url),
                params=request.params,
                headers=request.headers,
                body=request.body,
            )
        )
        self._log.debug(
            LogEvents.HTTP_PAGINATOR_REQUEST_PREPARED,
            method=pending.method,
            endpoint=pending.url,
            params=dict(pending.params) if pending.params else None,
        )

        previous: Page | None = None
        page_index = 0
        while True:
            response = transport.issue_request(
                pending.method,
                pending.url,
                headers=pending.headers,
                body=pending.body,
                params=pending.params,
            )
            page = pager.get_page(response.body, response, pending, previous)
            self._log.info(
                LogEvents.HTTP_PAGINATOR_PAGE_FETCHED,
                endpoint=pending.url,
                page_index=page_index,
                status_code=response.status_code,
                items_count=len(page.entities),
                emitted_total=page.count,
                is_last_page=page.is_last_page,
            )
            yield page

            if page.is_last_page or page.next_url is None:
                return
            pending = PageRequest(
                method=pending.method,
                url=page.next_url,
                params=None,
                headers=page.next_headers if page.next_headers is not None else pending.headers,
                body=page.next_data if page.next_data is not None else pending.body,
            )
            previous = page
            page_index += 1

    def collect(
        self,
        transport: HttpTransport,
        request: PageRequest,
        pager: Pager,
    ) -> list[dict[str, Any]]:
        """Return every entity payload across all pages."""

        records: list[dict[str, Any]] = []
        for page in self.iterate_pages(transport, request, pager):
            records.extend(page.entities)
        return records
