"""
SQLAlchemy ORM models for bidfinder.

Defines the database schema:
- Tenders: Scraped opportunities, unique by link and by OCID
- Awards: Awarded contracts with their detail page fields
- Organisations: Buyers and suppliers seen on tenders
- SourceStats: Per-source run statistics
- MetadataEntry: Key/value application state (last run timestamp)
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# =============================================================================
# Base Class
# =============================================================================


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in SQLite DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# =============================================================================
# Tender Model
# =============================================================================


class Tender(Base):
    """A procurement opportunity.

    Rows are inserted once and never updated.
    """

    __tablename__ = "tenders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str] = mapped_column(String(2000), unique=True, nullable=False)
    # Listing date exactly as published
    date_text: Mapped[str | None] = mapped_column("date", String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Multiple NULLs are permitted under a unique constraint
    ocid: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True)

    source: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="")
    scraped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    published_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    organisation: Mapped[str | None] = mapped_column(String(500), nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Detail page fields
    cpv_codes: Mapped[str | None] = mapped_column(Text, nullable=True)
    deadline: Mapped[str | None] = mapped_column(String(100), nullable=True)
    customer: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_tenders_scraped_at", "scraped_at"),
    )

    @property
    def tag_list(self) -> list[str]:
        return [tag for tag in (self.tags or "").split(",") if tag]

    def __repr__(self) -> str:
        return f"<Tender(id={self.id}, title='{self.title[:30]}...')>"


# =============================================================================
# Award Model
# =============================================================================


class Award(Base):
    """An awarded contract, read from an award listing and its detail page.

    Deduplicated by link and OCID like tenders; rows are never updated.
    """

    __tablename__ = "awards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str] = mapped_column(String(2000), unique=True, nullable=False)
    date_text: Mapped[str | None] = mapped_column("date", String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    ocid: Mapped[str | None] = mapped_column(String(200), unique=True, nullable=True)

    source: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="")
    scraped_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    buyer: Mapped[str | None] = mapped_column(String(500), nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Detail page fields, as published
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    industry: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    value: Mapped[str | None] = mapped_column(String(200), nullable=True)
    procurement_reference: Mapped[str | None] = mapped_column(String(200), nullable=True)
    closing_date: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closing_time: Mapped[str | None] = mapped_column(String(100), nullable=True)
    start_date: Mapped[str | None] = mapped_column(String(100), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contract_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    procedure_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    procedure_desc: Mapped[str | None] = mapped_column(Text, nullable=True)
    suitable_for_sme: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    suitable_for_vcse: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    how_to_apply: Mapped[str | None] = mapped_column(Text, nullable=True)
    buyer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    buyer_email: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_awards_scraped_at", "scraped_at"),
    )

    @property
    def tag_list(self) -> list[str]:
        return [tag for tag in (self.tags or "").split(",") if tag]

    def __repr__(self) -> str:
        return f"<Award(id={self.id}, title='{self.title[:30]}...')>"


# =============================================================================
# Organisation Model
# =============================================================================


class Organisation(Base):
    """A buyer or supplier named on a tender."""

    __tablename__ = "organisations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # buyer, supplier
    first_seen_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("name", "kind", name="uq_organisation_name_kind"),
    )

    def __repr__(self) -> str:
        return f"<Organisation(name='{self.name}', kind='{self.kind}')>"


# =============================================================================
# Source Statistics
# =============================================================================


class SourceStat(Base):
    """Run statistics for one configured source."""

    __tablename__ = "source_stats"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_added: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_added: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_runs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<SourceStat(key='{self.key}', last_added={self.last_added})>"


# =============================================================================
# Metadata
# =============================================================================


class MetadataEntry(Base):
    """Key/value application state."""

    __tablename__ = "metadata"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
