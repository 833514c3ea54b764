"""Extraction strategies for parsing listing pages and feeds."""

from .base import ExtractedRecord, parse_html
from .detail import AwardDetails, TenderDetails, parse_award_details, parse_tender_details
from .feed import extract_feed
from .listing import (
    extract_contracts_finder,
    extract_eu_supply,
    extract_sell2wales,
    extract_ukri,
)
from .strategies import STRATEGIES, extract_records, get_strategy

__all__ = [
    "ExtractedRecord",
    "parse_html",
    # Listing strategies
    "STRATEGIES",
    "extract_records",
    "get_strategy",
    "extract_contracts_finder",
    "extract_sell2wales",
    "extract_ukri",
    "extract_eu_supply",
    "extract_feed",
    # Detail pages
    "TenderDetails",
    "AwardDetails",
    "parse_tender_details",
    "parse_award_details",
]
