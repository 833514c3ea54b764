"""Fetch utilities - listing pagination."""

from .pagination import (
    DEFAULT_MAX_PAGES,
    ListingPage,
    PaginatingFetcher,
    find_next_page_url,
)

__all__ = [
    "DEFAULT_MAX_PAGES",
    "ListingPage",
    "PaginatingFetcher",
    "find_next_page_url",
]
