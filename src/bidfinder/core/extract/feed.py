"""
Syndication feed extraction (RSS 2.0 and Atom).
"""

from __future__ import annotations

import logging

from lxml import etree

from .base import OCID_PATTERN, XML_DECLARATION, ExtractedRecord, build_record, clean_text, parse_html


logger = logging.getLogger(__name__)

_PARSER = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)


def _local(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname.lower()


def _child(entry: etree._Element, *names: str) -> etree._Element | None:
    for child in entry:
        if _local(child.tag) in names:
            return child
    return None


def _child_text(entry: etree._Element, *names: str) -> str:
    child = _child(entry, *names)
    if child is None:
        return ""
    return clean_text("".join(child.itertext()))


def _entry_link(entry: etree._Element) -> str:
    for child in entry:
        if _local(child.tag) != "link":
            continue
        # Atom carries the URL in href, RSS in the element text
        href = child.get("href")
        if href and child.get("rel", "alternate") == "alternate":
            return href.strip()
        if child.text and child.text.strip():
            return child.text.strip()
    return ""


def _strip_markup(text: str) -> str:
    if "<" not in text:
        return text
    root = parse_html(text)
    return clean_text(root.text_content()) if root is not None else text


def _entry_ocid(entry: etree._Element, description: str) -> str | None:
    guid = _child_text(entry, "guid", "id")
    if guid:
        match = OCID_PATTERN.search(guid)
        return match.group(0) if match else guid
    match = OCID_PATTERN.search(description)
    return match.group(0) if match else None


def extract_feed(xml: str) -> list[ExtractedRecord]:
    """Extract one record per ``<item>`` (RSS) or ``<entry>`` (Atom)."""
    if not xml or not xml.strip():
        return []

    # Text is already decoded, so any encoding declaration is stale
    text = XML_DECLARATION.sub("", xml.strip(), count=1)
    try:
        root = etree.fromstring(text.encode("utf-8"), parser=_PARSER)
    except etree.XMLSyntaxError:
        return []
    if root is None:
        return []

    records: list[ExtractedRecord] = []
    for entry in root.iter():
        if _local(entry.tag) not in ("item", "entry"):
            continue

        description = _strip_markup(_child_text(entry, "description", "summary", "content"))
        record = build_record(
            title=_child_text(entry, "title"),
            link=_entry_link(entry),
            date=_child_text(entry, "pubdate", "published", "updated", "date"),
            description=description,
            organisation=_child_text(entry, "author", "creator") or None,
            ocid=_entry_ocid(entry, description),
        )
        if record is None:
            logger.debug("Dropped feed entry without title or link")
            continue
        records.append(record)

    return records
