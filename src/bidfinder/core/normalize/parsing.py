"""
Parsing utilities for normalizing extracted data.

Handles listing date strings and link resolution.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from urllib.parse import urljoin, urlsplit

import dateparser


logger = logging.getLogger(__name__)


# =============================================================================
# Date Parsing
# =============================================================================


@dataclass
class ParsedDate:
    """Result of parsing a date string."""

    value: datetime | None
    original: str

    @property
    def day(self) -> date | None:
        return self.value.date() if self.value else None


def parse_date(
    value: str | datetime | date | None,
    *,
    prefer_day_first: bool = True,
) -> ParsedDate:
    """Parse a date/datetime from the formats UK portals publish.

    Handles:
    - ISO 8601 formats
    - UK formats (DD/MM/YYYY)
    - Written dates ("3 March 2024", "Tue, 05 Mar 2024 09:00:00 GMT")

    Args:
        value: String or datetime to parse
        prefer_day_first: Prefer DD/MM/YYYY over MM/DD/YYYY

    Returns:
        ParsedDate; ``value`` is None when nothing could be parsed
    """
    if value is None:
        return ParsedDate(value=None, original="")

    original = str(value).strip()

    if isinstance(value, datetime):
        return ParsedDate(value=value, original=original)

    if isinstance(value, date):
        return ParsedDate(value=datetime.combine(value, time.min), original=original)

    text = _clean_date_string(original)
    if not text:
        return ParsedDate(value=None, original=original)

    # Try common patterns first (faster than dateparser)
    result = _try_common_patterns(text, prefer_day_first)
    if result:
        return ParsedDate(value=result, original=original)

    settings = {
        "PREFER_DAY_OF_MONTH": "first",
        "RETURN_AS_TIMEZONE_AWARE": False,
        "DATE_ORDER": "DMY" if prefer_day_first else "MDY",
    }

    parsed = dateparser.parse(text, settings=settings)
    if parsed is None:
        logger.debug("Unparseable date %r", original)
    return ParsedDate(value=parsed, original=original)


def _clean_date_string(text: str) -> str:
    """Clean and normalize a date string for parsing."""
    prefixes = [
        r"^published(?:\s+date)?:?\s*",
        r"^closing\s+date:?\s*",
        r"^deadline:?\s*",
        r"^posted:?\s*",
        r"^date:?\s*",
    ]
    for prefix in prefixes:
        text = re.sub(prefix, "", text, flags=re.IGNORECASE)

    return normalize_whitespace(text)


_ISO_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2})(?::(\d{2}))?)?")
_SLASHED_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\b")


def _try_common_patterns(text: str, prefer_day_first: bool) -> datetime | None:
    """Try to parse using common date patterns (fast path)."""
    try:
        match = _ISO_PATTERN.match(text)
        if match:
            year, month, day, hour, minute, second = (int(g or 0) for g in match.groups())
            return datetime(year, month, day, hour, minute, second)

        match = _SLASHED_PATTERN.match(text)
        if match:
            first, second_part, year = (int(g) for g in match.groups())
            day, month = (first, second_part) if prefer_day_first else (second_part, first)
            return datetime(year, month, day)
    except ValueError:
        return None
    return None


# =============================================================================
# Text and Link Helpers
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace to single spaces."""
    if not text:
        return ""
    return " ".join(text.split())


def resolve_link(href: str, base_url: str | None) -> str:
    """Resolve a possibly relative href against a base URL.

    Raises:
        ValueError: If the href cannot be parsed as a URL
    """
    href = href.strip()
    if not base_url or href.startswith(("http://", "https://")):
        url = href
    else:
        url = urljoin(base_url, href)
    urlsplit(url)
    return url
