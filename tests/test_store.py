"""Tests for the tender store and the deduplicating writer."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from bidfinder.core.extract import AwardDetails
from bidfinder.core.orchestrator import DeduplicatingWriter
from bidfinder.persistence.db import dispose_engine, get_engine
from bidfinder.persistence.repo import StoreError

from conftest import make_candidate


# =============================================================================
# TenderStore
# =============================================================================


class TestTenderStore:
    def test_insert_is_idempotent_by_link(self, store):
        candidate = make_candidate()

        assert store.insert_if_absent(candidate) is True
        assert store.insert_if_absent(candidate) is False
        assert store.count_tenders() == 1

    def test_duplicate_ocid_with_new_link_is_skipped(self, store):
        assert store.insert_if_absent(make_candidate("https://example.org/a", ocid="ocds-x1-1")) is True
        assert store.insert_if_absent(make_candidate("https://example.org/b", ocid="ocds-x1-1")) is False
        assert store.count_tenders() == 1

    def test_missing_ocids_do_not_collide(self, store):
        assert store.insert_if_absent(make_candidate("https://example.org/a")) is True
        assert store.insert_if_absent(make_candidate("https://example.org/b")) is True
        assert store.count_tenders() == 2

    def test_stored_columns(self, store):
        candidate = make_candidate(tags=["it", "health"], organisation="NHS Digital")
        candidate.date = "05/03/2024"
        candidate.published_on = date(2024, 3, 5)
        candidate.cpv_codes = ["72000000", "48000000"]
        store.insert_if_absent(candidate)

        tender = store.get_by_link(candidate.link)
        assert tender.date_text == "05/03/2024"
        assert tender.published_on == date(2024, 3, 5)
        assert tender.tag_list == ["it", "health"]
        assert tender.cpv_codes == "72000000,48000000"
        assert tender.source == "Contracts Finder"

    def test_list_tenders_filters(self, store):
        store.insert_if_absent(make_candidate("https://example.org/a", tags=["it"]))
        store.insert_if_absent(make_candidate("https://example.org/b", tags=["health", "it"]))
        store.insert_if_absent(make_candidate("https://example.org/c", tags=["facilities"]))

        assert {t.link for t in store.list_tenders(tag="it")} == {
            "https://example.org/a",
            "https://example.org/b",
        }
        assert store.list_tenders(tag="i") == []
        assert len(store.list_tenders(source="Contracts Finder")) == 3
        assert len(store.list_tenders(limit=2)) == 2

    def test_organisations_unique_by_name_and_kind(self, store):
        assert store.insert_organisation_if_absent("Leeds City Council", "buyer") is True
        assert store.insert_organisation_if_absent("Leeds City Council", "buyer") is False
        assert store.insert_organisation_if_absent("Leeds City Council", "supplier") is True
        assert store.insert_organisation_if_absent("   ", "buyer") is False
        assert len(store.list_organisations()) == 2

    def test_award_insert_is_idempotent(self, store):
        details = AwardDetails(buyer="Cardiff Council", value="£1,200,000", suitable_for_vcse=True)

        assert store.insert_award_if_absent(make_candidate(ocid="ocds-x1-9"), details) is True
        assert store.insert_award_if_absent(make_candidate("https://example.org/b", ocid="ocds-x1-9"), details) is False
        assert store.count_awards() == 1
        assert store.count_tenders() == 0

        award = store.list_awards()[0]
        assert award.buyer == "Cardiff Council"
        assert award.value == "£1,200,000"
        assert award.suitable_for_vcse is True
        assert award.status is None

    def test_award_and_tender_tables_are_independent(self, store):
        candidate = make_candidate()
        assert store.insert_if_absent(candidate) is True
        assert store.insert_award_if_absent(candidate, AwardDetails()) is True
        assert len(store.list_awards(source="Contracts Finder")) == 1

    def test_last_run_timestamp(self, store):
        assert store.get_last_run_timestamp() is None

        store.set_last_run_timestamp(datetime(2024, 3, 5, 9, 0))
        store.set_last_run_timestamp(datetime(2024, 3, 6, 9, 0))

        assert store.get_last_run_timestamp() == datetime(2024, 3, 6, 9, 0)

    def test_source_stats_accumulate(self, store):
        store.update_source_stats("cf", datetime(2024, 3, 5), 3)
        store.update_source_stats("cf", datetime(2024, 3, 6), 2)

        stat = store.get_source_stats("cf")
        assert stat.last_added == 2
        assert stat.total_added == 5
        assert stat.total_runs == 2
        assert stat.last_run_at == datetime(2024, 3, 6)
        assert store.get_source_stats("other") is None


# =============================================================================
# DeduplicatingWriter
# =============================================================================


class RecordingStore:
    """Store stub that records calls and can be told to fail."""

    def __init__(self, insert_result=True, fail_insert=False, fail_org=False):
        self.insert_result = insert_result
        self.fail_insert = fail_insert
        self.fail_org = fail_org
        self.organisations: list[tuple[str, str]] = []

    def insert_if_absent(self, candidate):
        if self.fail_insert:
            raise StoreError("disk full")
        return self.insert_result

    def insert_award_if_absent(self, candidate, details):
        if self.fail_insert:
            raise StoreError("disk full")
        return self.insert_result

    def insert_organisation_if_absent(self, name, kind):
        if self.fail_org:
            raise StoreError("locked")
        self.organisations.append((name, kind))
        return True

    def set_last_run_timestamp(self, ts):
        pass

    def update_source_stats(self, key, ts, added):
        pass


class TestDeduplicatingWriter:
    def test_registers_buyer_and_supplier_on_insert(self):
        store = RecordingStore()
        writer = DeduplicatingWriter(store)

        assert writer.write(make_candidate(organisation="Leeds City Council", supplier="Acme Ltd")) is True
        assert store.organisations == [("Leeds City Council", "buyer"), ("Acme Ltd", "supplier")]

    def test_duplicate_registers_nothing(self):
        store = RecordingStore(insert_result=False)
        assert DeduplicatingWriter(store).write(make_candidate(organisation="Leeds City Council")) is False
        assert store.organisations == []

    def test_store_failure_reported_as_not_inserted(self, caplog):
        store = RecordingStore(fail_insert=True)
        assert DeduplicatingWriter(store).write(make_candidate()) is False
        assert "disk full" in caplog.text

    def test_organisation_failure_does_not_undo_insert(self):
        store = RecordingStore(fail_org=True)
        assert DeduplicatingWriter(store).write(make_candidate(organisation="Leeds City Council")) is True

    def test_award_registers_detail_buyer_and_supplier(self):
        store = RecordingStore()
        writer = DeduplicatingWriter(store)
        details = AwardDetails(buyer="Cardiff Council")

        assert writer.write_award(make_candidate(organisation="Listing Buyer", supplier="Acme Ltd"), details) is True
        assert store.organisations == [("Cardiff Council", "buyer"), ("Acme Ltd", "supplier")]

    def test_award_store_failure_reported_as_not_inserted(self, caplog):
        store = RecordingStore(fail_insert=True)
        assert DeduplicatingWriter(store).write_award(make_candidate(), AwardDetails()) is False
        assert "disk full" in caplog.text

    def test_writes_through_real_store(self, store):
        writer = DeduplicatingWriter(store)
        candidate = make_candidate(organisation="Cardiff Council")

        assert writer.write(candidate) is True
        assert writer.write(candidate) is False
        assert [(o.name, o.kind) for o in store.list_organisations()] == [("Cardiff Council", "buyer")]


def test_store_error_keeps_cause():
    cause = ValueError("boom")
    error = StoreError("failed", cause=cause)
    assert error.cause is cause
    with pytest.raises(StoreError):
        raise error


def test_get_engine_rebuilds_for_new_url(tmp_path):
    try:
        first = get_engine("sqlite://")
        assert get_engine("sqlite://") is first

        second = get_engine(f"sqlite:///{tmp_path / 'other.db'}")
        assert second is not first
        assert str(second.url).endswith("other.db")
    finally:
        dispose_engine()
