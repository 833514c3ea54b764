"""
Scrape run orchestrator.

Coordinates one source run: fetch every listing page, extract records,
classify, normalize and persist them, reporting progress events to the
caller along the way.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Sequence

from bidfinder.core.backends import Backend, BackendError, HttpBackend, RequestSpec
from bidfinder.core.classify import classify
from bidfinder.core.config.defaults import DEFAULT_TAG_RULES
from bidfinder.core.config.loader import ConfigError
from bidfinder.core.config.models import FetchConfig, SourceConfig, SourceKind
from bidfinder.core.extract import (
    AwardDetails,
    ExtractedRecord,
    extract_records,
    parse_award_details,
    parse_tender_details,
)
from bidfinder.core.fetch import DEFAULT_MAX_PAGES, ListingPage, PaginatingFetcher
from bidfinder.core.logging import ContextualLogger
from bidfinder.core.normalize import TenderCandidate, normalize_tender
from bidfinder.persistence.models import utcnow
from bidfinder.persistence.repo import StoreError

from .writer import DeduplicatingWriter

if TYPE_CHECKING:
    from bidfinder.persistence.repo import Store


logger = logging.getLogger(__name__)

DEFAULT_SOURCE_KEY = "contracts_finder"

ProgressEvent = dict[str, Any]
ProgressCallback = Callable[[ProgressEvent], "Awaitable[None] | None"]


class RunState(str, Enum):
    """Lifecycle of a source run."""

    START = "start"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    PERSISTING = "persisting"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of one source run."""

    source_key: str
    added: int = 0
    found: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str:
        """One of ``failed``, ``empty``, ``no_new`` or ``added``."""
        if self.error is not None:
            return "failed"
        if self.found == 0:
            return "empty"
        if self.added == 0:
            return "no_new"
        return "added"


async def _emit(callback: ProgressCallback | None, event: ProgressEvent) -> None:
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


# =============================================================================
# Source Runner
# =============================================================================


class SourceRunner:
    """Runs the scrape workflow for a single source.

    Workflow:
    - Fetch all listing pages (following "next" links)
    - Extract records with the source's strategy
    - Classify, normalize and write each record in page order; award
      sources always read each notice's detail page
    - Record completion time and per-source statistics
    """

    def __init__(
        self,
        source: SourceConfig,
        store: "Store",
        *,
        backend: Backend | None = None,
        tag_rules: Mapping[str, Sequence[str]] | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        follow_details: bool = False,
        fetch_config: FetchConfig | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            source: Source to scrape
            store: Persistence target
            backend: Fetch backend; an HttpBackend is created (and closed) if omitted
            tag_rules: Tag name to keywords; defaults to the built-in rules
            max_pages: Listing page cap
            follow_details: Fetch each tender's detail page for extra fields
            fetch_config: Timeout, retry and user agent settings for a created backend
        """
        self.source = source
        self.store = store
        self.tag_rules = tag_rules if tag_rules is not None else DEFAULT_TAG_RULES
        self.max_pages = max_pages
        self.follow_details = follow_details
        self.fetch_config = fetch_config or FetchConfig()

        self._backend = backend
        self._owns_backend = backend is None

        self.writer = DeduplicatingWriter(store)
        self.log = ContextualLogger(logger, source=source.key)
        self.state = RunState.START

    def _transition(self, state: RunState) -> None:
        self.state = state
        self.log.debug("State -> %s", state.value, extra={"state": state.value})

    def _create_backend(self) -> Backend:
        return HttpBackend(
            timeout=self.fetch_config.timeout_seconds,
            max_attempts=self.fetch_config.max_attempts,
            user_agent=self.fetch_config.user_agent,
        )

    async def run(self, on_progress: ProgressCallback | None = None) -> RunResult:
        """Execute the run.

        Args:
            on_progress: Called with each progress event; may be a coroutine function

        Returns:
            RunResult; fetch failures are reported in ``error`` rather than raised
        """
        source = self.source
        self._transition(RunState.START)
        self.log.info("Starting scrape of %s", source.label)
        await _emit(on_progress, {"step": "start", "source": {"label": source.label, "url": source.url}})

        backend = self._backend or self._create_backend()
        try:
            try:
                pages = await self._fetch_pages(backend)
            except BackendError as e:
                self._transition(RunState.FAILED)
                self.log.error("Scrape of %s failed: %s", source.label, e, extra={"url": e.url})
                return RunResult(source_key=source.key, error=str(e))

            records = self._extract(pages)
            await _emit(on_progress, {"step": "found", "count": len(records)})

            added = await self._persist(records, backend, on_progress)
        finally:
            if self._owns_backend:
                await backend.close()

        result = RunResult(source_key=source.key, added=added, found=len(records))
        self._complete(result)
        return result

    async def _fetch_pages(self, backend: Backend) -> list[ListingPage]:
        self._transition(RunState.FETCHING)
        fetcher = PaginatingFetcher(backend, max_pages=self.max_pages)
        pages = await fetcher.fetch_all(self.source.url, self.source.base, source_key=self.source.key)
        self.log.debug("Fetched %d listing pages", len(pages), extra={"count": len(pages)})
        return pages

    def _extract(self, pages: list[ListingPage]) -> list[ExtractedRecord]:
        self._transition(RunState.EXTRACTING)
        records: list[ExtractedRecord] = []
        for page in pages:
            page_records = extract_records(page.html, self.source.strategy)
            self.log.debug(
                "Page %d yielded %d records",
                page.page_number,
                len(page_records),
                extra={"page": page.page_number, "count": len(page_records)},
            )
            records.extend(page_records)
        self.log.info("Found %d tenders", len(records), extra={"count": len(records)})
        return records

    async def _persist(
        self,
        records: list[ExtractedRecord],
        backend: Backend,
        on_progress: ProgressCallback | None,
    ) -> int:
        self._transition(RunState.PERSISTING)
        scraped_at = utcnow()
        total = len(records)
        added = 0

        for index, record in enumerate(records, start=1):
            inserted = False
            title = record.title
            candidate: TenderCandidate | None
            try:
                candidate = normalize_tender(
                    record,
                    source_label=self.source.label,
                    base_url=self.source.base,
                    scraped_at=scraped_at,
                    tags=classify(record.title, record.description, self.tag_rules),
                )
            except ValueError as e:
                self.log.warning("Skipping record with unusable link %r: %s", record.link, e)
                candidate = None

            if candidate is not None:
                title = candidate.title
                if self.source.kind is SourceKind.AWARD:
                    details = await self._award_details(candidate, backend)
                    inserted = self.writer.write_award(candidate, details)
                else:
                    if self.follow_details:
                        await self._apply_details(candidate, backend)
                    inserted = self.writer.write(candidate)
            if inserted:
                added += 1

            await _emit(
                on_progress,
                {
                    "step": "tender",
                    "title": title,
                    "index": index,
                    "total": total,
                    "inserted": inserted,
                },
            )
        return added

    async def _fetch_detail(self, link: str, backend: Backend) -> str | None:
        """Fetch a detail page; failures are logged and yield None."""
        try:
            result = await backend.fetch(
                RequestSpec(url=link, source_key=self.source.key, page_type="detail")
            )
        except BackendError as e:
            self.log.debug("Detail fetch failed for %s: %s", link, e)
            return None
        return result.html if result.ok else None

    async def _apply_details(self, candidate: TenderCandidate, backend: Backend) -> None:
        html = await self._fetch_detail(candidate.link, backend)
        if html is not None:
            candidate.apply_details(parse_tender_details(html))

    async def _award_details(self, candidate: TenderCandidate, backend: Backend) -> AwardDetails:
        """Read an award's detail page; empty details if it cannot be fetched."""
        html = await self._fetch_detail(candidate.link, backend)
        return parse_award_details(html) if html is not None else AwardDetails()

    def _complete(self, result: RunResult) -> None:
        self._transition(RunState.COMPLETE)
        completed_at = utcnow()
        try:
            self.store.set_last_run_timestamp(completed_at)
            self.store.update_source_stats(self.source.key, completed_at, result.added)
        except StoreError as e:
            self.log.error("Failed to record run completion: %s", e)

        if result.outcome == "empty":
            self.log.warning("No tenders found on %s", self.source.label)
        elif result.outcome == "no_new":
            self.log.info("No new tenders (%d already stored)", result.found)
        else:
            self.log.info("Added %d new tenders", result.added, extra={"count": result.added})


# =============================================================================
# Convenience Functions
# =============================================================================


def resolve_source(
    sources: Mapping[str, SourceConfig],
    key: str | None = None,
    default_key: str = DEFAULT_SOURCE_KEY,
) -> SourceConfig:
    """Pick the source for a run: the explicit key or the configured default.

    Raises:
        ConfigError: If the key is not configured
    """
    effective = (key or default_key).strip().lower()
    if effective not in sources:
        raise ConfigError(
            f"Unknown source: {effective}",
            details="available: " + ", ".join(sorted(sources)),
        )
    return sources[effective]


async def run_source(
    key: str | None = None,
    *,
    sources: Mapping[str, SourceConfig],
    store: "Store",
    backend: Backend | None = None,
    tag_rules: Mapping[str, Sequence[str]] | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    follow_details: bool = False,
    fetch_config: FetchConfig | None = None,
    default_key: str = DEFAULT_SOURCE_KEY,
    on_progress: ProgressCallback | None = None,
) -> RunResult:
    """Scrape one source by key.

    Args:
        key: Source key; None uses ``default_key``
        sources: Configured sources
        store: Persistence target
        on_progress: Progress callback

    Returns:
        RunResult for the source
    """
    source = resolve_source(sources, key, default_key)
    runner = SourceRunner(
        source,
        store,
        backend=backend,
        tag_rules=tag_rules,
        max_pages=max_pages,
        follow_details=follow_details,
        fetch_config=fetch_config,
    )
    return await runner.run(on_progress)


async def run_all(
    sources: Mapping[str, SourceConfig],
    store: "Store",
    *,
    backend: Backend | None = None,
    tag_rules: Mapping[str, Sequence[str]] | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    follow_details: bool = False,
    fetch_config: FetchConfig | None = None,
    on_progress: ProgressCallback | None = None,
) -> dict[str, RunResult]:
    """Scrape every enabled source, one after another.

    Each progress event gains a ``source_key`` entry. A failing source is
    reported in its RunResult and does not stop the sources after it.

    Returns:
        Mapping of source key to RunResult, in run order
    """
    results: dict[str, RunResult] = {}

    for key, source in sources.items():
        if not source.enabled:
            logger.debug("Skipping disabled source %s", key)
            continue

        async def forward(event: ProgressEvent, _key: str = key) -> None:
            await _emit(on_progress, {**event, "source_key": _key})

        runner = SourceRunner(
            source,
            store,
            backend=backend,
            tag_rules=tag_rules,
            max_pages=max_pages,
            follow_details=follow_details,
            fetch_config=fetch_config,
        )
        try:
            results[key] = await runner.run(forward)
        except Exception as e:
            logger.exception("Unexpected error scraping %s", key)
            results[key] = RunResult(source_key=key, error=str(e))

    failed = [key for key, result in results.items() if not result.ok]
    if failed:
        logger.warning("%d of %d sources failed: %s", len(failed), len(results), ", ".join(failed))
    return results
