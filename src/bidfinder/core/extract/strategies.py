"""
Extraction strategy registry and dispatch.
"""

from __future__ import annotations

import logging

from bidfinder.core.config.models import DEFAULT_STRATEGY, STRATEGY_ALIASES, ExtractionStrategy

from .base import ExtractedRecord, Strategy
from .feed import extract_feed
from .listing import (
    extract_contracts_finder,
    extract_eu_supply,
    extract_sell2wales,
    extract_ukri,
)


logger = logging.getLogger(__name__)


STRATEGIES: dict[str, Strategy] = {
    ExtractionStrategy.CONTRACTS_FINDER.value: extract_contracts_finder,
    ExtractionStrategy.SELL2WALES.value: extract_sell2wales,
    ExtractionStrategy.UKRI.value: extract_ukri,
    ExtractionStrategy.EU_SUPPLY.value: extract_eu_supply,
    ExtractionStrategy.RSS.value: extract_feed,
}


def get_strategy(name: str | ExtractionStrategy | None) -> Strategy:
    """Look up a strategy, falling back to the default for unknown names."""
    key = name.value if isinstance(name, ExtractionStrategy) else (name or "")
    key = key.strip().lower()
    if key in STRATEGY_ALIASES:
        key = STRATEGY_ALIASES[key].value
    strategy = STRATEGIES.get(key)
    if strategy is None:
        if key:
            logger.debug("Unknown strategy %r, using %s", key, DEFAULT_STRATEGY.value)
        strategy = STRATEGIES[DEFAULT_STRATEGY.value]
    return strategy


def extract_records(html: str, strategy: str | ExtractionStrategy | None = None) -> list[ExtractedRecord]:
    """Extract records from one listing page.

    Args:
        html: Page markup (or feed XML for the rss strategy)
        strategy: Strategy name; unknown names use contracts_finder

    Returns:
        Records in page order. Never raises for malformed input.
    """
    return get_strategy(strategy)(html)
