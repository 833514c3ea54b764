"""Shared fixtures: in-memory store, fake backend, sample sources."""

from __future__ import annotations

from datetime import datetime

import pytest

from bidfinder.core.backends import Backend, FetchResult, RequestSpec
from bidfinder.core.config.models import SourceConfig
from bidfinder.core.normalize import TenderCandidate
from bidfinder.persistence.db import create_db_engine, make_session_factory
from bidfinder.persistence.models import Base
from bidfinder.persistence.repo import TenderStore


class FakeBackend(Backend):
    """Serves canned pages by URL; an Exception value is raised instead."""

    def __init__(
        self,
        pages: dict[str, object] | None = None,
        status_codes: dict[str, int] | None = None,
        final_urls: dict[str, str] | None = None,
    ):
        self.pages = pages or {}
        self.status_codes = status_codes or {}
        self.final_urls = final_urls or {}
        self.requests: list[RequestSpec] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(self, request: RequestSpec) -> FetchResult:
        self.requests.append(request)
        page = self.pages.get(request.url, "")
        if isinstance(page, Exception):
            raise page
        return FetchResult(
            url=request.url,
            final_url=self.final_urls.get(request.url, request.url),
            status_code=self.status_codes.get(request.url, 200),
            html=str(page),
        )

    async def close(self) -> None:
        self.closed = True

    @property
    def fetched_urls(self) -> list[str]:
        return [r.url for r in self.requests]


@pytest.fixture
def store():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = make_session_factory(engine)()
    try:
        yield TenderStore(session)
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def source() -> SourceConfig:
    return SourceConfig(
        key="cf",
        label="Contracts Finder",
        url="https://example.org/search",
        base="https://example.org",
        strategy="contracts_finder",
    )


def make_candidate(
    link: str = "https://example.org/notice/1",
    *,
    title: str = "Cloud hosting services",
    ocid: str | None = None,
    tags: list[str] | None = None,
    organisation: str | None = None,
    supplier: str | None = None,
) -> TenderCandidate:
    return TenderCandidate(
        title=title,
        link=link,
        source="Contracts Finder",
        scraped_at=datetime(2024, 3, 5, 9, 0),
        ocid=ocid,
        tags=tags or [],
        organisation=organisation,
        supplier=supplier,
    )


def search_result(title: str, href: str, date: str = "05/03/2024", description: str = "") -> str:
    return (
        '<div class="search-result">'
        f'<h2>{title}</h2><a href="{href}">View</a>'
        f'<span class="date">{date}</span><p>{description}</p>'
        "</div>"
    )
