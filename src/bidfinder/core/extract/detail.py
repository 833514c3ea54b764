"""
Tender and award detail page parsing.

Detail pages present labelled sections: a heading such as
"Closing date" followed by its value on the next line. Pages are
flattened to text lines and values are read after their labels.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

from .base import clean_text, parse_html


CPV_PATTERN = re.compile(r"\b\d{8}\b")

STATUS_PATTERN = re.compile(r"(Open opportunity|Closed opportunity|Awarded)", re.IGNORECASE)

SKIPPED_TAGS = {"script", "style", "noscript", "template"}

AWARD_SECTION_LABELS = re.compile(
    r"^(location of contract|value of contract|procurement reference|published date|"
    r"closing date|closing time|contract start date|contract end date|contract type|"
    r"procedure type)",
    re.IGNORECASE,
)


@dataclass
class TenderDetails:
    """Fields read from an opportunity detail page."""

    cpv_codes: list[str] = field(default_factory=list)
    open_date: str = ""
    deadline: str = ""
    customer: str = ""
    address: str = ""
    country: str = ""
    description: str = ""
    eligibility: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AwardDetails:
    """Fields read from an awarded contract page."""

    buyer: str = ""
    status: str = ""
    industry: str = ""
    location: str = ""
    value: str = ""
    procurement_reference: str = ""
    closing_date: str = ""
    closing_time: str = ""
    start_date: str = ""
    end_date: str = ""
    contract_type: str = ""
    procedure_type: str = ""
    procedure_desc: str = ""
    suitable_for_sme: bool = False
    suitable_for_vcse: bool = False
    description: str = ""
    how_to_apply: str = ""
    buyer_address: str = ""
    buyer_email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Text flattening
# =============================================================================


def page_lines(html: str) -> list[str]:
    """Flatten markup to non-empty text lines, one per text node line."""
    root = parse_html(html)
    if root is None:
        return []

    lines: list[str] = []
    _walk(root, lines)
    return lines


def _walk(element: Any, lines: list[str]) -> None:
    if not isinstance(element.tag, str) or element.tag in SKIPPED_TAGS:
        return
    if element.text:
        lines.extend(_split(element.text))
    for child in element:
        _walk(child, lines)
        if child.tail:
            lines.extend(_split(child.tail))


def _split(text: str) -> list[str]:
    return [clean_text(part) for part in text.splitlines() if part.strip()]


class _Lines:
    """Label lookups over flattened page lines."""

    def __init__(self, lines: list[str]):
        self.lines = lines
        self._lowered = [line.lower() for line in lines]

    def index(self, label: str) -> int:
        try:
            return self._lowered.index(label.lower())
        except ValueError:
            return -1

    def value_after(self, *labels: str) -> str:
        for label in labels:
            idx = self.index(label)
            if idx != -1 and idx + 1 < len(self.lines):
                return self.lines[idx + 1]
        return ""

    def section(self, label: str, stop: re.Pattern[str], joiner: str = " ") -> str:
        """Join the lines after ``label`` up to the first line matching ``stop``."""
        start = self.index(label)
        if start == -1:
            return ""
        values = []
        for line in self.lines[start + 1:]:
            if stop.search(line):
                break
            values.append(line)
        return joiner.join(values)


def _until(*labels: str) -> re.Pattern[str]:
    return re.compile(r"^(%s)$" % "|".join(re.escape(label) for label in labels), re.IGNORECASE)


# =============================================================================
# Parsers
# =============================================================================


def parse_tender_details(html: str) -> TenderDetails:
    """Parse an opportunity detail page.

    Args:
        html: Detail page markup

    Returns:
        TenderDetails; fields absent from the page are empty
    """
    lines = _Lines(page_lines(html))
    text = " ".join(lines.lines)

    return TenderDetails(
        cpv_codes=list(dict.fromkeys(CPV_PATTERN.findall(text))),
        open_date=lines.value_after("Published date"),
        deadline=lines.value_after("Closing date", "Response deadline"),
        customer=lines.value_after("Name of buying organisation", "Buyer"),
        address=lines.value_after("Address"),
        country=lines.value_after("Country"),
        description=lines.section(
            "Description",
            re.compile(r"^(eligibility|how to apply|about the buyer)", re.IGNORECASE),
        ),
        eligibility=lines.value_after("Eligibility"),
    )


def parse_award_details(html: str) -> AwardDetails:
    """Parse an awarded contract page."""
    lines = _Lines(page_lines(html))
    text = " ".join(lines.lines)

    status = STATUS_PATTERN.search(text)
    buyer = lines.value_after("Buyer", "Name of buying organisation")
    if not buyer and len(lines.lines) > 1:
        # Award pages lead with the title followed by the buyer name
        buyer = lines.lines[1]

    return AwardDetails(
        buyer=buyer,
        status=status.group(0) if status else "",
        industry=lines.section("Industry", AWARD_SECTION_LABELS, joiner="; "),
        location=lines.value_after("Location of contract"),
        value=lines.value_after("Value of contract"),
        procurement_reference=lines.value_after("Procurement reference"),
        closing_date=lines.value_after("Closing date"),
        closing_time=lines.value_after("Closing time"),
        start_date=lines.value_after("Contract start date"),
        end_date=lines.value_after("Contract end date"),
        contract_type=lines.value_after("Contract type"),
        procedure_type=lines.value_after("Procedure type"),
        procedure_desc=_procedure_description(lines),
        suitable_for_sme=lines.value_after("Contract is suitable for SMEs?").lower() == "yes",
        suitable_for_vcse=lines.value_after("Contract is suitable for VCSEs?").lower() == "yes",
        description=lines.section("Description", _until("How to apply")),
        how_to_apply=lines.section("How to apply", _until("About the buyer")),
        buyer_address=lines.section("Address", _until("Email"), joiner=", "),
        buyer_email=lines.value_after("Email"),
    )


def _procedure_description(lines: _Lines) -> str:
    """Explanation following a "What is ..." heading."""
    for idx, line in enumerate(lines.lines):
        if line.lower().startswith("what is"):
            values = []
            for follow in lines.lines[idx + 1:]:
                if follow.lower().startswith("contract is suitable"):
                    break
                values.append(follow)
            return " ".join(values)
    return ""
