"""
HTML listing extractors.

Each function locates the repeating record blocks of one portal layout
and reads the standard fields out of every block. Blocks without a
title or link are dropped.
"""

from __future__ import annotations

import logging
from typing import Iterable

from lxml.html import HtmlElement

from .base import ExtractedRecord, parse_html, record_from_block


logger = logging.getLogger(__name__)


def _collect(
    blocks: Iterable[HtmlElement],
    *,
    description_selector: str = "p",
    layout: str,
) -> list[ExtractedRecord]:
    records: list[ExtractedRecord] = []
    dropped = 0

    for block in blocks:
        record = record_from_block(block, description_selector=description_selector)
        if record is None:
            dropped += 1
            continue
        records.append(record)

    if dropped:
        logger.debug("Dropped %d incomplete %s blocks", dropped, layout)
    return records


def _rows_with_links(root: HtmlElement) -> list[HtmlElement]:
    rows = []
    for row in root.iter("tr"):
        # Skip rows that only wrap a nested table's rows
        if row.find(".//table") is not None:
            continue
        if row.find(".//a[@href]") is not None:
            rows.append(row)
    return rows


def extract_contracts_finder(html: str) -> list[ExtractedRecord]:
    """Contracts Finder: one ``div.search-result`` per opportunity."""
    root = parse_html(html)
    if root is None:
        return []
    return _collect(root.cssselect("div.search-result"), layout="search-result")


def extract_sell2wales(html: str) -> list[ExtractedRecord]:
    """Sell2Wales: table rows carrying a notice link."""
    root = parse_html(html)
    if root is None:
        return []
    return _collect(_rows_with_links(root), layout="table row")


def extract_ukri(html: str) -> list[ExtractedRecord]:
    """UKRI: one ``<article>`` per funding opportunity."""
    root = parse_html(html)
    if root is None:
        return []
    return _collect(root.iter("article"), layout="article")


def extract_eu_supply(html: str) -> list[ExtractedRecord]:
    """EU-Supply: table rows with the summary in ``td.description``."""
    root = parse_html(html)
    if root is None:
        return []
    return _collect(
        _rows_with_links(root),
        description_selector="td.description",
        layout="table row",
    )
