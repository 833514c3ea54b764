"""
Extraction base types and block-level helpers.

Every strategy turns one listing page into ExtractedRecord values by
locating record blocks and reading fields out of each block with the
helpers below.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Callable

from lxml import etree
from lxml import html as lxml_html
from lxml.html import HtmlElement


TITLE_HEADINGS = ("h1", "h2", "h3", "h4")

# Anchor text that is never a real title
TITLE_STOPWORDS = {"view", "details", "more", "read more", "view details", "view notice"}

DATE_PATTERN = re.compile(
    r"\b(\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2}|"
    r"\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{4})\b",
    re.IGNORECASE,
)

OCID_PATTERN = re.compile(r"\bocds-[a-z0-9]{2,}-[A-Za-z0-9][A-Za-z0-9_./-]*", re.IGNORECASE)

XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)

ORGANISATION_SELECTOR = ".org, .organisation, .organization, .buyer"
SUPPLIER_SELECTOR = ".supplier, .awarded-to"


@dataclass(frozen=True)
class ExtractedRecord:
    """One opportunity as read from a listing page.

    ``link`` may still be relative; it is resolved against the source's
    base URL when the record is normalised.
    """

    title: str
    link: str
    date: str = ""
    description: str = ""
    organisation: str | None = None
    supplier: str | None = None
    ocid: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Strategy = Callable[[str], "list[ExtractedRecord]"]


# =============================================================================
# Parsing
# =============================================================================


def parse_html(html: str) -> HtmlElement | None:
    """Parse markup leniently; None when there is nothing to parse."""
    if not html or not html.strip():
        return None
    # lxml refuses str input that carries an encoding declaration
    text = XML_DECLARATION.sub("", html, count=1)
    try:
        return lxml_html.fromstring(text)
    except (etree.ParserError, ValueError):
        return None


def clean_text(text: str | None) -> str:
    """Normalize whitespace in text."""
    return re.sub(r"\s+", " ", text).strip() if text else ""


def element_text(element: HtmlElement | None) -> str:
    if element is None:
        return ""
    return clean_text(element.text_content())


def first_match(block: HtmlElement, selector: str) -> HtmlElement | None:
    found = block.cssselect(selector)
    return found[0] if found else None


# =============================================================================
# Field helpers
# =============================================================================


def is_usable_href(href: str | None) -> bool:
    if not href or not href.strip():
        return False
    href = href.strip()
    return not (href.startswith("#") or href.lower().startswith(("javascript:", "mailto:")))


def primary_link(block: HtmlElement) -> tuple[str, str]:
    """Return (href, anchor text) of the first usable anchor in a block."""
    anchors = [block] if block.tag == "a" else []
    anchors.extend(block.iter("a"))
    for anchor in anchors:
        href = anchor.get("href")
        if is_usable_href(href):
            return href.strip(), element_text(anchor)
    return "", ""


def is_title_candidate(text: str | None) -> bool:
    if not text:
        return False
    return text.strip().lower() not in TITLE_STOPWORDS


def block_title(block: HtmlElement, link_text: str) -> str:
    """Heading text wins over anchor text when both are present."""
    for tag in TITLE_HEADINGS:
        for heading in block.iter(tag):
            text = element_text(heading)
            if text:
                return text
    if is_title_candidate(link_text):
        return link_text
    return ""


def block_date(block: HtmlElement) -> str:
    """Find a date: <time>, then a date-labelled span, then a raw pattern."""
    for time_el in block.iter("time"):
        text = element_text(time_el) or (time_el.get("datetime") or "").strip()
        if text:
            return text

    labelled = first_match(block, ".date, span[class*='date'], [class*='published']")
    text = element_text(labelled)
    if text:
        return text

    match = DATE_PATTERN.search(block.text_content() or "")
    return match.group(1) if match else ""


def block_description(block: HtmlElement, selector: str = "p") -> str:
    return element_text(first_match(block, selector))


def block_ocid(block: HtmlElement) -> str | None:
    """Open-contracting id from a data attribute or the block text."""
    for element in block.iter():
        if not isinstance(element.tag, str):
            continue
        value = element.get("data-ocid")
        if value and value.strip():
            return value.strip()

    match = OCID_PATTERN.search(block.text_content() or "")
    if match:
        return match.group(0).rstrip("./")

    for anchor in block.iter("a"):
        match = OCID_PATTERN.search(anchor.get("href") or "")
        if match:
            return match.group(0).rstrip("./")
    return None


def labelled_value(block: HtmlElement, selector: str) -> str | None:
    return element_text(first_match(block, selector)) or None


def build_record(
    *,
    title: str,
    link: str,
    date: str = "",
    description: str = "",
    organisation: str | None = None,
    supplier: str | None = None,
    ocid: str | None = None,
) -> ExtractedRecord | None:
    """Create a record, or None when title or link is missing."""
    title = clean_text(title)
    link = (link or "").strip()
    if not title or not link:
        return None
    return ExtractedRecord(
        title=title,
        link=link,
        date=clean_text(date),
        description=clean_text(description),
        organisation=organisation or None,
        supplier=supplier or None,
        ocid=ocid or None,
    )


def record_from_block(block: HtmlElement, *, description_selector: str = "p") -> ExtractedRecord | None:
    """Read the standard fields from one listing block."""
    href, link_text = primary_link(block)
    return build_record(
        title=block_title(block, link_text),
        link=href,
        date=block_date(block),
        description=block_description(block, description_selector),
        organisation=labelled_value(block, ORGANISATION_SELECTOR),
        supplier=labelled_value(block, SUPPLIER_SELECTOR),
        ocid=block_ocid(block),
    )
