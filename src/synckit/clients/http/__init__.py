"""Pagination primitives for HTTP-based providers."""

from .pagers import (
    LinkHeaderPager,
    ODataPager,
    Page,
    PageMetaPager,
    PageRequest,
    Pager,
    SinglePagePager,
    build_pager,
)
from .paginator import Paginator

__all__ = [
    "LinkHeaderPager",
    "ODataPager",
    "Page",
    "PageMetaPager",
    "PageRequest",
    "Pager",
    "Paginator",
    "SinglePagePager",
    "build_pager",
]
