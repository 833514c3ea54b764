"""
Deduplicating tender and award writer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from bidfinder.core.config.models import OrganisationKind
from bidfinder.persistence.repo import StoreError

if TYPE_CHECKING:
    from bidfinder.core.extract.detail import AwardDetails
    from bidfinder.core.normalize.canonical import TenderCandidate
    from bidfinder.persistence.repo import Store


logger = logging.getLogger(__name__)


class DeduplicatingWriter:
    """Write candidates to a store, skipping ones already present.

    Store failures are logged and reported as not inserted so a run
    carries on with the next record.
    """

    def __init__(self, store: "Store"):
        self.store = store

    def write(self, candidate: "TenderCandidate") -> bool:
        """Persist a candidate.

        Returns:
            True if the tender was new and stored
        """
        try:
            inserted = self.store.insert_if_absent(candidate)
        except (StoreError, SQLAlchemyError) as e:
            logger.error("Failed to store tender %s: %s", candidate.link, e)
            return False

        if inserted:
            self._register(candidate.organisation, OrganisationKind.BUYER)
            self._register(candidate.supplier, OrganisationKind.SUPPLIER)
        return inserted

    def write_award(self, candidate: "TenderCandidate", details: "AwardDetails") -> bool:
        """Persist an awarded contract with its detail page fields.

        Returns:
            True if the award was new and stored
        """
        try:
            inserted = self.store.insert_award_if_absent(candidate, details)
        except (StoreError, SQLAlchemyError) as e:
            logger.error("Failed to store award %s: %s", candidate.link, e)
            return False

        if inserted:
            self._register(details.buyer or candidate.organisation, OrganisationKind.BUYER)
            self._register(candidate.supplier, OrganisationKind.SUPPLIER)
        return inserted

    def _register(self, name: str | None, kind: OrganisationKind) -> None:
        if not name:
            return
        try:
            self.store.insert_organisation_if_absent(name, kind.value)
        except (StoreError, SQLAlchemyError) as e:
            logger.warning("Failed to record %s %r: %s", kind.value, name, e)
