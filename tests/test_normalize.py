"""Tests for date parsing and record normalization."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from bidfinder.core.extract import ExtractedRecord
from bidfinder.core.extract.detail import TenderDetails
from bidfinder.core.normalize import normalize_tender, parse_date, resolve_link


SCRAPED_AT = datetime(2024, 3, 5, 9, 0)


class TestParseDate:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("05/03/2024", date(2024, 3, 5)),
            ("2024-03-05", date(2024, 3, 5)),
            ("2024-03-05T14:30:00", date(2024, 3, 5)),
            ("3 March 2024", date(2024, 3, 3)),
            ("Published: 12/04/2024", date(2024, 4, 12)),
        ],
    )
    def test_formats(self, text, expected):
        assert parse_date(text).day == expected

    def test_month_first_when_requested(self):
        assert parse_date("05/03/2024", prefer_day_first=False).day == date(2024, 5, 3)

    def test_unparseable(self):
        parsed = parse_date("xyzzy")
        assert parsed.value is None
        assert parsed.day is None
        assert parsed.original == "xyzzy"

    def test_empty(self):
        assert parse_date(None).value is None
        assert parse_date("   ").value is None


def test_resolve_link():
    assert resolve_link("/notice/1", "https://example.org") == "https://example.org/notice/1"
    assert resolve_link(" https://other.org/x ", "https://example.org") == "https://other.org/x"
    assert resolve_link("/notice/1", None) == "/notice/1"


@pytest.mark.parametrize("href", ["//[broken/x", "https://[oops/p2"])
def test_resolve_link_rejects_malformed(href):
    with pytest.raises(ValueError):
        resolve_link(href, "https://example.org")


class TestNormalizeTender:
    def test_normalizes_record(self):
        record = ExtractedRecord(
            title="  Cloud   hosting\n services ",
            link="/notice/abc",
            date="05/03/2024",
            description="Managed   hosting",
            organisation=" Leeds City Council ",
            ocid=" ocds-b5fd17-1 ",
        )

        candidate = normalize_tender(
            record,
            source_label="Contracts Finder",
            base_url="https://www.contractsfinder.service.gov.uk",
            scraped_at=SCRAPED_AT,
            tags=["it"],
        )

        assert candidate.title == "Cloud hosting services"
        assert candidate.link == "https://www.contractsfinder.service.gov.uk/notice/abc"
        assert candidate.date == "05/03/2024"
        assert candidate.published_on == date(2024, 3, 5)
        assert candidate.description == "Managed hosting"
        assert candidate.organisation == "Leeds City Council"
        assert candidate.supplier is None
        assert candidate.ocid == "ocds-b5fd17-1"
        assert candidate.tags == ["it"]
        assert candidate.scraped_at == SCRAPED_AT

    def test_unparseable_date_kept_as_text(self):
        record = ExtractedRecord(title="T", link="https://x.org/1", date="TBC")
        candidate = normalize_tender(record, source_label="S", base_url=None, scraped_at=SCRAPED_AT)
        assert candidate.date == "TBC"
        assert candidate.published_on is None

    def test_apply_details_fills_gaps_only(self):
        record = ExtractedRecord(title="T", link="https://x.org/1", description="Listing text")
        candidate = normalize_tender(record, source_label="S", base_url=None, scraped_at=SCRAPED_AT)

        candidate.apply_details(TenderDetails(
            cpv_codes=["72000000"],
            deadline="30 April 2024",
            customer="Leeds City Council",
            description="Detail text",
        ))

        assert candidate.description == "Listing text"
        assert candidate.organisation == "Leeds City Council"
        assert candidate.cpv_codes == ["72000000"]
        assert candidate.to_dict()["cpv_codes"] == "72000000"
