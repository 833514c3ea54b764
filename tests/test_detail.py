"""Tests for detail page parsing."""

from __future__ import annotations

from bidfinder.core.extract import parse_award_details, parse_tender_details
from bidfinder.core.extract.detail import page_lines


TENDER_PAGE = """
<html><head><title>Notice</title><script>var x = "Closing date";</script></head>
<body>
  <h1>Data platform support</h1>
  <dl>
    <dt>Published date</dt><dd>1 March 2024</dd>
    <dt>Closing date</dt><dd>30 April 2024</dd>
    <dt>Name of buying organisation</dt><dd>Leeds City Council</dd>
    <dt>Address</dt><dd>Civic Hall, Leeds</dd>
    <dt>Country</dt><dd>United Kingdom</dd>
  </dl>
  <p>CPV: 72000000, 48000000, 72000000</p>
  <h2>Description</h2>
  <p>Support for the council data platform.</p>
  <p>Three year term.</p>
  <h2>Eligibility</h2>
  <p>Open to all suppliers</p>
</body></html>
"""

AWARD_PAGE = """
<main>
  <h1>Waste collection services</h1>
  <p>Cardiff Council</p>
  <p>Awarded</p>
  <h3>Industry</h3>
  <ul><li>Refuse services</li><li>Recycling services</li></ul>
  <h3>Location of contract</h3><p>Wales</p>
  <h3>Value of contract</h3><p>£1,200,000</p>
  <h3>Procurement reference</h3><p>CC-2024-17</p>
  <h3>Contract start date</h3><p>1 June 2024</p>
  <h3>Contract end date</h3><p>31 May 2027</p>
  <h3>Procedure type</h3><p>Open procedure</p>
  <h3>What is an open procedure?</h3>
  <p>Any supplier may bid.</p>
  <h3>Contract is suitable for SMEs?</h3><p>Yes</p>
  <h3>Contract is suitable for VCSEs?</h3><p>No</p>
  <h3>Description</h3><p>Kerbside collection.</p>
  <h3>How to apply</h3><p>Via the portal.</p>
  <h3>About the buyer</h3>
  <h3>Address</h3><p>County Hall</p><p>Cardiff</p>
  <h3>Email</h3><p>procurement@cardiff.example</p>
</main>
"""


def test_page_lines_skip_scripts_and_keep_order():
    lines = page_lines(TENDER_PAGE)
    assert 'var x = "Closing date";' not in lines
    assert lines.index("Closing date") < lines.index("30 April 2024")
    assert page_lines("") == []


def test_tender_details():
    details = parse_tender_details(TENDER_PAGE)

    assert details.cpv_codes == ["72000000", "48000000"]
    assert details.open_date == "1 March 2024"
    assert details.deadline == "30 April 2024"
    assert details.customer == "Leeds City Council"
    assert details.address == "Civic Hall, Leeds"
    assert details.country == "United Kingdom"
    assert details.description == "Support for the council data platform. Three year term."
    assert details.eligibility == "Open to all suppliers"


def test_tender_details_absent_fields():
    details = parse_tender_details("<p>Nothing useful</p>")
    assert details.cpv_codes == []
    assert details.deadline == ""
    assert details.to_dict()["customer"] == ""


def test_award_details():
    details = parse_award_details(AWARD_PAGE)

    assert details.buyer == "Cardiff Council"
    assert details.status == "Awarded"
    assert details.industry == "Refuse services; Recycling services"
    assert details.location == "Wales"
    assert details.value == "£1,200,000"
    assert details.procurement_reference == "CC-2024-17"
    assert details.start_date == "1 June 2024"
    assert details.end_date == "31 May 2027"
    assert details.procedure_type == "Open procedure"
    assert details.procedure_desc == "Any supplier may bid."
    assert details.suitable_for_sme is True
    assert details.suitable_for_vcse is False
    assert details.description == "Kerbside collection."
    assert details.how_to_apply == "Via the portal."
    assert details.buyer_address == "County Hall, Cardiff"
    assert details.buyer_email == "procurement@cardiff.example"
