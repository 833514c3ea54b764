"""Normalization of extracted records into tender candidates."""

from .canonical import TenderCandidate, normalize_tender
from .parsing import ParsedDate, normalize_whitespace, parse_date, resolve_link

__all__ = [
    # Parsing
    "ParsedDate",
    "parse_date",
    "normalize_whitespace",
    "resolve_link",
    # Canonical
    "TenderCandidate",
    "normalize_tender",
]
