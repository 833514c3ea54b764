"""
Built-in source catalogue and tag rules.

Used when no sources.yaml / tags.yaml exists, and as the base that
configured sources are merged over.
"""

from __future__ import annotations

# =============================================================================
# Listing Sources
# =============================================================================

DEFAULT_SOURCES: dict[str, dict[str, str]] = {
    "contracts_finder": {
        "label": "Contracts Finder",
        "url": "https://www.contractsfinder.service.gov.uk/Search",
        "base": "https://www.contractsfinder.service.gov.uk",
        "strategy": "contracts_finder",
    },
    "contracts_finder_rss": {
        "label": "Contracts Finder (RSS)",
        "url": "https://www.contractsfinder.service.gov.uk/rss",
        "base": "https://www.contractsfinder.service.gov.uk",
        "strategy": "rss",
    },
    "sell2wales": {
        "label": "Sell2Wales",
        "url": "https://www.sell2wales.gov.wales/search/search_mainpage.aspx",
        "base": "https://www.sell2wales.gov.wales",
        "strategy": "sell2wales",
    },
    "ukri": {
        "label": "UKRI",
        "url": "https://www.ukri.org/opportunity/",
        "base": "https://www.ukri.org",
        "strategy": "ukri",
    },
    "eu_supply": {
        "label": "EU-Supply",
        "url": "https://uk.eu-supply.com/ctm/supplier/publictenders",
        "base": "https://uk.eu-supply.com",
        "strategy": "eu_supply",
    },
    "contracts_finder_awards": {
        "label": "Contracts Finder (awards)",
        "url": "https://www.contractsfinder.service.gov.uk/Search?stage=awarded",
        "base": "https://www.contractsfinder.service.gov.uk",
        "strategy": "contracts_finder",
        "kind": "award",
    },
}


# =============================================================================
# Tag Rules (tag -> keywords, matched case-insensitively as substrings)
# =============================================================================

DEFAULT_TAG_RULES: dict[str, list[str]] = {
    "it": [
        "software",
        "digital",
        "cloud",
        "cyber",
        "hosting",
        "network",
        "data platform",
    ],
    "construction": [
        "construction",
        "building works",
        "refurbishment",
        "civil engineering",
        "demolition",
    ],
    "health": [
        "health",
        "clinical",
        "medical",
        "nhs",
        "pharmacy",
    ],
    "consultancy": [
        "consultancy",
        "advisory",
        "professional services",
    ],
    "facilities": [
        "cleaning",
        "catering",
        "maintenance",
        "security services",
        "waste",
    ],
    "research": [
        "research",
        "innovation",
        "fellowship",
        "grant",
    ],
}
