"""
Listing pagination.

Follows "next page" links from a listing start URL until no further
page is advertised, a page repeats, or the page cap is reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator
from urllib.parse import urldefrag, urljoin, urlsplit

from lxml.html import HtmlElement

from bidfinder.core.backends import Backend, FetchError, RequestSpec
from bidfinder.core.extract.base import clean_text, is_usable_href, parse_html


logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 20

# Attributes inspected for "next" anywhere in the value; href is not one of them
HINT_ATTRIBUTES = ("class", "id", "aria-label", "title", "rel")

NEXT_TEXTS = {
    "next",
    "next page",
    "next »",
    "next ›",
    "next >",
    "next →",
    "›",
    "»",
    ">",
    "→",
}


@dataclass
class ListingPage:
    """A fetched listing page."""

    url: str
    html: str
    page_number: int


# =============================================================================
# Next-link discovery
# =============================================================================


def _rel_next(root: HtmlElement) -> str | None:
    for element in root.iter("link", "a"):
        rel = (element.get("rel") or "").lower().split()
        href = element.get("href")
        if "next" in rel and is_usable_href(href):
            return href.strip()
    return None


def _attribute_hint(root: HtmlElement) -> str | None:
    for anchor in root.iter("a"):
        href = anchor.get("href")
        if not is_usable_href(href):
            continue
        for attr in HINT_ATTRIBUTES:
            if "next" in (anchor.get(attr) or "").lower():
                return href.strip()
    return None


def _text_hint(root: HtmlElement) -> str | None:
    for anchor in root.iter("a"):
        href = anchor.get("href")
        if not is_usable_href(href):
            continue
        if clean_text(anchor.text_content()).lower() in NEXT_TEXTS:
            return href.strip()
    return None


def find_next_page_url(html: str, base_url: str) -> str | None:
    """Find the URL of the next listing page.

    Checks, in order: an explicit ``rel="next"`` link, anchors whose
    class/id/aria-label/title mention "next", then anchors whose text is
    "Next" or a forward glyph. Fragment-only and ``javascript:`` links
    are ignored.

    Args:
        html: Listing page markup
        base_url: URL relative hrefs are resolved against

    Returns:
        Absolute URL of the next page, or None
    """
    root = parse_html(html)
    if root is None:
        return None

    for finder in (_rel_next, _attribute_hint, _text_hint):
        href = finder(root)
        if not href:
            continue
        try:
            url = urljoin(base_url, href)
            urlsplit(url)
            return url
        except ValueError:
            logger.debug("Ignoring malformed next link %r", href)
            return None
    return None


def _normalize(url: str) -> str:
    return urldefrag(url)[0]


# =============================================================================
# Paginating fetcher
# =============================================================================


class PaginatingFetcher:
    """Fetch a listing and every page linked from it as "next"."""

    def __init__(self, backend: Backend, max_pages: int = DEFAULT_MAX_PAGES):
        self.backend = backend
        self.max_pages = max(1, max_pages)

    async def iter_pages(
        self,
        start_url: str,
        base_url: str | None = None,
        source_key: str | None = None,
    ) -> AsyncIterator[ListingPage]:
        """Yield listing pages in order.

        Raises:
            FetchError: If any page cannot be fetched
        """
        visited: set[str] = set()
        url: str | None = start_url
        page_number = 0

        while url and page_number < self.max_pages:
            normalized = _normalize(url)
            if normalized in visited:
                logger.debug("Stopping pagination at repeated URL %s", url)
                break
            visited.add(normalized)

            result = await self.backend.fetch(
                RequestSpec(url=url, source_key=source_key, page_type="listing")
            )
            if not result.ok:
                raise FetchError(
                    f"Unexpected status {result.status_code}",
                    url=url,
                    status_code=result.status_code,
                )
            if result.final_url:
                visited.add(_normalize(result.final_url))

            page_number += 1
            logger.debug(
                "Fetched listing page %d",
                page_number,
                extra={"url": url, "page": page_number},
            )
            yield ListingPage(url=url, html=result.html, page_number=page_number)

            # Relative links resolve against the page itself unless a base is configured
            url = find_next_page_url(result.html, base_url or result.final_url or url)

        if url and page_number >= self.max_pages:
            logger.info("Page cap of %d reached for %s", self.max_pages, source_key or start_url)

    async def fetch_all(
        self,
        start_url: str,
        base_url: str | None = None,
        source_key: str | None = None,
    ) -> list[ListingPage]:
        """Collect every listing page into a list."""
        return [page async for page in self.iter_pages(start_url, base_url, source_key)]
