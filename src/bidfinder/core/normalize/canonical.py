"""
Canonical tender model for normalized data.

Provides a clean interface between raw extraction and database persistence.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .parsing import normalize_whitespace, parse_date, resolve_link

if TYPE_CHECKING:
    from bidfinder.core.extract.base import ExtractedRecord
    from bidfinder.core.extract.detail import TenderDetails


@dataclass
class TenderCandidate:
    """Normalized tender ready for persistence.

    Candidates are written once; a stored tender is never updated.
    """

    title: str
    link: str  # absolute
    source: str  # source label
    scraped_at: datetime

    date: str = ""  # listing date as published
    description: str = ""
    organisation: str | None = None
    supplier: str | None = None
    ocid: str | None = None
    tags: list[str] = field(default_factory=list)

    published_on: date | None = None

    # Detail page fields
    cpv_codes: list[str] = field(default_factory=list)
    deadline: str | None = None
    customer: str | None = None

    def apply_details(self, details: "TenderDetails") -> None:
        """Copy detail page fields onto the candidate."""
        self.cpv_codes = list(details.cpv_codes)
        self.deadline = details.deadline or None
        self.customer = details.customer or None
        if not self.description and details.description:
            self.description = details.description
        if not self.organisation and details.customer:
            self.organisation = details.customer

    def to_dict(self) -> dict[str, Any]:
        """Convert to column values for persistence."""
        data = asdict(self)
        data["tags"] = ",".join(self.tags)
        data["cpv_codes"] = ",".join(self.cpv_codes) or None
        return data


def normalize_tender(
    record: "ExtractedRecord",
    *,
    source_label: str,
    base_url: str | None,
    scraped_at: datetime,
    tags: list[str] | None = None,
) -> TenderCandidate:
    """Normalize an extracted record to canonical form.

    Args:
        record: Record read from a listing page
        source_label: Label of the source the record came from
        base_url: Base URL for resolving relative links
        scraped_at: Run-wide scrape timestamp
        tags: Classification tags, in rule order

    Returns:
        TenderCandidate with an absolute link
    """
    published = parse_date(record.date) if record.date else None

    return TenderCandidate(
        title=normalize_whitespace(record.title),
        link=resolve_link(record.link, base_url),
        source=source_label,
        scraped_at=scraped_at,
        date=record.date,
        description=normalize_whitespace(record.description),
        organisation=normalize_whitespace(record.organisation) or None,
        supplier=normalize_whitespace(record.supplier) or None,
        ocid=(record.ocid or "").strip() or None,
        tags=list(tags or []),
        published_on=published.day if published else None,
    )
