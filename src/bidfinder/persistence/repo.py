"""
Repository for tender and award persistence.

TenderStore is the single writer used by scrape runs. Inserts are
idempotent: a tender or award whose link or OCID is already stored is
skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, Sequence

from sqlalchemy import func, literal, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .models import Award, MetadataEntry, Organisation, SourceStat, Tender

if TYPE_CHECKING:
    from bidfinder.core.extract.detail import AwardDetails
    from bidfinder.core.normalize.canonical import TenderCandidate


logger = logging.getLogger(__name__)

LAST_RUN_KEY = "last_run"


class StoreError(Exception):
    """Persistence failure."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class Store(Protocol):
    """Operations a scrape run needs from persistence."""

    def insert_if_absent(self, candidate: "TenderCandidate") -> bool: ...

    def insert_award_if_absent(self, candidate: "TenderCandidate", details: "AwardDetails") -> bool: ...

    def insert_organisation_if_absent(self, name: str, kind: str) -> bool: ...

    def set_last_run_timestamp(self, ts: datetime) -> None: ...

    def update_source_stats(self, key: str, ts: datetime, added: int) -> None: ...


# =============================================================================
# Tender Store
# =============================================================================


class TenderStore:
    """SQLAlchemy-backed store for tenders, organisations and run state."""

    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Commit failed: {e}", cause=e) from e

    # -------------------------------------------------------------------------
    # Tenders
    # -------------------------------------------------------------------------

    def exists(self, link: str, ocid: str | None = None) -> bool:
        """Check whether a tender with this link or OCID is stored."""
        condition = Tender.link == link
        if ocid:
            condition = or_(condition, Tender.ocid == ocid)
        stmt = select(Tender.id).where(condition).limit(1)
        return self.session.execute(stmt).first() is not None

    def insert_if_absent(self, candidate: "TenderCandidate") -> bool:
        """Insert a tender unless its link or OCID is already stored.

        Returns:
            True if a row was inserted

        Raises:
            StoreError: On database failure other than a uniqueness conflict
        """
        try:
            if self.exists(candidate.link, candidate.ocid):
                return False

            tender = Tender(
                title=candidate.title,
                link=candidate.link,
                date_text=candidate.date or None,
                description=candidate.description or None,
                ocid=candidate.ocid,
                source=candidate.source,
                tags=",".join(candidate.tags),
                scraped_at=candidate.scraped_at,
                published_on=candidate.published_on,
                organisation=candidate.organisation,
                supplier=candidate.supplier,
                cpv_codes=",".join(candidate.cpv_codes) or None,
                deadline=candidate.deadline,
                customer=candidate.customer,
            )
            self.session.add(tender)
            self.session.commit()
            return True

        except IntegrityError:
            # Lost a race against an equal link or OCID
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to insert tender {candidate.link}: {e}", cause=e) from e

    def get_by_link(self, link: str) -> Tender | None:
        stmt = select(Tender).where(Tender.link == link)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_tenders(
        self,
        source: str | None = None,
        tag: str | None = None,
        limit: int = 50,
    ) -> Sequence[Tender]:
        """List the most recently scraped tenders.

        Args:
            source: Filter by source label
            tag: Filter by tag name
            limit: Maximum rows
        """
        stmt = select(Tender)
        if source:
            stmt = stmt.where(Tender.source == source)
        if tag:
            wrapped = literal(",") + Tender.tags + literal(",")
            stmt = stmt.where(wrapped.like(f"%,{tag},%"))
        stmt = stmt.order_by(Tender.scraped_at.desc(), Tender.id.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()

    def count_tenders(self, source: str | None = None) -> int:
        stmt = select(func.count(Tender.id))
        if source:
            stmt = stmt.where(Tender.source == source)
        return self.session.execute(stmt).scalar() or 0

    # -------------------------------------------------------------------------
    # Awards
    # -------------------------------------------------------------------------

    def award_exists(self, link: str, ocid: str | None = None) -> bool:
        """Check whether an award with this link or OCID is stored."""
        condition = Award.link == link
        if ocid:
            condition = or_(condition, Award.ocid == ocid)
        stmt = select(Award.id).where(condition).limit(1)
        return self.session.execute(stmt).first() is not None

    def insert_award_if_absent(self, candidate: "TenderCandidate", details: "AwardDetails") -> bool:
        """Insert an awarded contract unless its link or OCID is already stored.

        Args:
            candidate: Normalized listing record
            details: Fields read from the award's detail page

        Returns:
            True if a row was inserted

        Raises:
            StoreError: On database failure other than a uniqueness conflict
        """
        try:
            if self.award_exists(candidate.link, candidate.ocid):
                return False

            award = Award(
                title=candidate.title,
                link=candidate.link,
                date_text=candidate.date or None,
                description=candidate.description or details.description or None,
                ocid=candidate.ocid,
                source=candidate.source,
                tags=",".join(candidate.tags),
                scraped_at=candidate.scraped_at,
                buyer=details.buyer or candidate.organisation,
                supplier=candidate.supplier,
                status=details.status or None,
                industry=details.industry or None,
                location=details.location or None,
                value=details.value or None,
                procurement_reference=details.procurement_reference or None,
                closing_date=details.closing_date or None,
                closing_time=details.closing_time or None,
                start_date=details.start_date or None,
                end_date=details.end_date or None,
                contract_type=details.contract_type or None,
                procedure_type=details.procedure_type or None,
                procedure_desc=details.procedure_desc or None,
                suitable_for_sme=details.suitable_for_sme,
                suitable_for_vcse=details.suitable_for_vcse,
                how_to_apply=details.how_to_apply or None,
                buyer_address=details.buyer_address or None,
                buyer_email=details.buyer_email or None,
            )
            self.session.add(award)
            self.session.commit()
            return True

        except IntegrityError:
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to insert award {candidate.link}: {e}", cause=e) from e

    def list_awards(self, source: str | None = None, limit: int = 50) -> Sequence[Award]:
        """List the most recently scraped awards."""
        stmt = select(Award)
        if source:
            stmt = stmt.where(Award.source == source)
        stmt = stmt.order_by(Award.scraped_at.desc(), Award.id.desc()).limit(limit)
        return self.session.execute(stmt).scalars().all()

    def count_awards(self, source: str | None = None) -> int:
        stmt = select(func.count(Award.id))
        if source:
            stmt = stmt.where(Award.source == source)
        return self.session.execute(stmt).scalar() or 0

    # -------------------------------------------------------------------------
    # Organisations
    # -------------------------------------------------------------------------

    def insert_organisation_if_absent(self, name: str, kind: str) -> bool:
        """Register an organisation unless (name, kind) is already stored."""
        name = name.strip()
        if not name:
            return False

        try:
            stmt = select(Organisation.id).where(
                Organisation.name == name,
                Organisation.kind == kind,
            )
            if self.session.execute(stmt).first() is not None:
                return False

            self.session.add(Organisation(name=name, kind=kind))
            self.session.commit()
            return True

        except IntegrityError:
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to insert organisation {name!r}: {e}", cause=e) from e

    def list_organisations(self, kind: str | None = None) -> Sequence[Organisation]:
        stmt = select(Organisation)
        if kind:
            stmt = stmt.where(Organisation.kind == kind)
        return self.session.execute(stmt.order_by(Organisation.name)).scalars().all()

    # -------------------------------------------------------------------------
    # Run state
    # -------------------------------------------------------------------------

    def set_last_run_timestamp(self, ts: datetime) -> None:
        entry = self.session.get(MetadataEntry, LAST_RUN_KEY)
        if entry is None:
            self.session.add(MetadataEntry(key=LAST_RUN_KEY, value=ts.isoformat()))
        else:
            entry.value = ts.isoformat()
        self._commit()

    def get_last_run_timestamp(self) -> datetime | None:
        entry = self.session.get(MetadataEntry, LAST_RUN_KEY)
        if entry is None:
            return None
        try:
            return datetime.fromisoformat(entry.value)
        except ValueError:
            logger.warning("Ignoring malformed last run timestamp %r", entry.value)
            return None

    def update_source_stats(self, key: str, ts: datetime, added: int) -> None:
        """Record a completed run for a source."""
        stat = self.session.get(SourceStat, key)
        if stat is None:
            stat = SourceStat(key=key, last_added=0, total_added=0, total_runs=0)
            self.session.add(stat)

        stat.last_run_at = ts
        stat.last_added = added
        stat.total_added = (stat.total_added or 0) + added
        stat.total_runs = (stat.total_runs or 0) + 1
        self._commit()

    def get_source_stats(self, key: str) -> SourceStat | None:
        return self.session.get(SourceStat, key)

    def list_source_stats(self) -> Sequence[SourceStat]:
        stmt = select(SourceStat).order_by(SourceStat.key)
        return self.session.execute(stmt).scalars().all()
