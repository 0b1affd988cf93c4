"""Tests for the diskcache-backed bill store."""

from datetime import date, datetime, timedelta, timezone

from govbills.bills.models import BillConcept, BillVersionRecord, Politician, SummaryAttemptRecord
from govbills.core.store import BillStore


def _bill(bill_id: str, version: str = "ih") -> BillConcept:
    congress, bill_type, number = bill_id.split("-")
    return BillConcept(
        id=bill_id,
        congress=int(congress),
        bill_type=bill_type,
        bill_number=number,
        title="To do things.",
        latest_version_code=version,
        status="Introduced in House",
        summary="A summary.",
        tagline="A tagline.",
    )


def _version(bill_id: str, version: str = "ih") -> BillVersionRecord:
    congress, bill_type, number = bill_id.split("-")
    return BillVersionRecord(
        id=BillVersionRecord.make_id(bill_id, version),
        bill_id=bill_id,
        version_code=version,
        title="Title",
        published_date=date(2025, 2, 10),
        full_text="Text of the bill.",
        xml_url=f"https://example.com/BILLS-{congress}{bill_type}{number}{version}.xml",
        text_length=17,
    )


class TestBills:
    def test_round_trip(self, store):
        """Stored bills come back equal, with aware timestamps."""
        bill = _bill("119-hr-1")
        store.put_bill(bill)

        loaded = store.get_bill("119-hr-1")

        assert loaded == bill
        assert loaded.updated_at.tzinfo is not None

    def test_missing_and_delete(self, store):
        """Unknown ids give None; deleting reports whether anything was removed."""
        store.put_bill(_bill("119-hr-1"))

        assert store.get_bill("119-hr-2") is None
        assert store.delete_bill("119-hr-1") is True
        assert store.delete_bill("119-hr-1") is False

    def test_pagination(self, store):
        """Listings page by key with a cursor until exhausted."""
        for number in range(1, 6):
            store.put_bill(_bill(f"119-hr-{number}"))

        seen = []
        cursor = None
        pages = 0
        while True:
            bills, cursor = store.list_bills(cursor=cursor, limit=2)
            seen.extend(b.id for b in bills)
            pages += 1
            if cursor is None:
                break

        assert sorted(seen) == [f"119-hr-{n}" for n in range(1, 6)]
        assert len(seen) == 5
        assert pages == 3

    def test_exact_page_has_no_cursor(self, store):
        """A listing that fits in one page returns no cursor."""
        store.put_bill(_bill("119-hr-1"))
        store.put_bill(_bill("119-hr-2"))

        bills, cursor = store.list_bills(limit=2)

        assert len(bills) == 2
        assert cursor is None

    def test_deleting_during_pagination(self, store):
        """Deleting already-listed records doesn't skip the rest."""
        for number in range(1, 5):
            store.put_bill(_bill(f"119-hr-{number}"))

        first, cursor = store.list_bills(limit=2)
        for bill in first:
            store.delete_bill(bill.id)
        second, cursor = store.list_bills(cursor=cursor, limit=2)

        assert len(second) == 2
        assert {b.id for b in first}.isdisjoint({b.id for b in second})


class TestVersions:
    def test_url_index(self, store):
        """Versions can be found by the URL they were read from."""
        version = _version("119-hr-1")
        store.put_version(version)

        assert store.get_version("119-hr-1", "ih") == version
        assert store.get_version_by_url(version.xml_url) == version
        assert store.get_version_by_url("https://example.com/other.xml") is None

    def test_delete_removes_url_index(self, store):
        """Deleting a version also forgets its URL."""
        version = _version("119-hr-1")
        store.put_version(version)

        assert store.delete_version(version.id) is True
        assert store.get_version_by_url(version.xml_url) is None
        assert store.delete_version(version.id) is False

    def test_versions_and_bills_are_listed_separately(self, store):
        """Each record type pages over its own keys."""
        store.put_bill(_bill("119-hr-1"))
        store.put_version(_version("119-hr-1"))
        store.put_version(_version("119-hr-1", "rh"))

        versions, _ = store.list_versions()
        bills, _ = store.list_bills()

        assert [v.id for v in versions] == ["119-hr-1/ih", "119-hr-1/rh"]
        assert [b.id for b in bills] == ["119-hr-1"]


class TestOtherRecords:
    def test_politicians(self, store):
        """Politicians are keyed by govinfo id."""
        store.put_politician(Politician(govinfo_id="S001234", name="Ms. Smith"))

        assert store.get_politician("S001234").name == "Ms. Smith"
        assert store.get_politician("X000000") is None

    def test_summary_attempts_in_insertion_order(self, store):
        """Rejected summaries are kept as an append-only audit trail."""
        base = datetime(2025, 2, 10, tzinfo=timezone.utc)
        for i in range(3):
            store.add_summary_attempt(
                SummaryAttemptRecord(
                    congress=119,
                    bill_type="hr",
                    bill_number=str(i),
                    version_code="ih",
                    xml_url=f"https://example.com/BILLS-119hr{i}ih.xml",
                    reason="Summary missing or too short",
                    created_at=base + timedelta(seconds=i),
                )
            )

        attempts = store.list_summary_attempts()

        assert [a.bill_number for a in attempts] == ["0", "1", "2"]


class TestWatermark:
    def test_unset(self, store):
        """A fresh store has no watermark."""
        assert store.get_last_checked() is None

    def test_round_trip_is_utc(self, store):
        """Watermarks are stored and returned as aware UTC datetimes."""
        store.set_last_checked(datetime(2025, 2, 10, 12, 30))

        assert store.get_last_checked() == datetime(2025, 2, 10, 12, 30, tzinfo=timezone.utc)

    def test_survives_reopen(self, tmp_path):
        """State persists across store instances on the same directory."""
        directory = str(tmp_path / "persisted")
        first = BillStore(directory)
        first.set_last_checked(datetime(2025, 1, 1, tzinfo=timezone.utc))
        first.put_bill(_bill("119-s-5"))
        first.close()

        second = BillStore(directory)
        try:
            assert second.get_last_checked() == datetime(2025, 1, 1, tzinfo=timezone.utc)
            assert second.get_bill("119-s-5") is not None
        finally:
            second.close()
