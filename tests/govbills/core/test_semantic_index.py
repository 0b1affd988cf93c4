"""Tests for the Qdrant semantic index, run against an in-memory Qdrant."""

import pytest
from qdrant_client.models import FieldCondition, Filter, MatchValue

from govbills.core.exceptions import IndexingError
from govbills.core.semantic_index import SemanticIndex, entry_id_for

NAMESPACE = "bills"


def _filters(bill_id: str, bill_type: str = "hr") -> dict[str, str]:
    return {"bill_identifier": bill_id, "bill_type": bill_type, "congress": "119", "sponsor": "S001234"}


def _add(index, key: str, chunks: list[str], bill_type: str = "hr") -> str:
    return index.add(
        NAMESPACE,
        key,
        chunks,
        metadata={"title": f"Bill {key}"},
        filter_values=_filters(key, bill_type),
        title=f"HR {key}",
    )


def _point_count(index, entry_id: str) -> int:
    return index.client.count(
        collection_name=index.collection_name,
        count_filter=Filter(must=[FieldCondition(key="entry_id", match=MatchValue(value=entry_id))]),
        exact=True,
    ).count


class TestSemanticIndex:
    def test_add_is_deterministic(self, index):
        """Entry ids depend only on namespace and key."""
        entry_id = _add(index, "119-hr-1", ["first chunk", "second chunk"])

        assert entry_id == entry_id_for(NAMESPACE, "119-hr-1")
        assert entry_id != entry_id_for("other", "119-hr-1")
        assert _point_count(index, entry_id) == 2

    def test_re_add_replaces_chunks(self, index):
        """Re-adding a key with fewer chunks leaves no stale chunks behind."""
        entry_id = _add(index, "119-hr-1", ["one", "two", "three"])
        _add(index, "119-hr-1", ["only one now"])

        assert _point_count(index, entry_id) == 1
        page = index.list_entries(NAMESPACE)
        assert len(page.entries) == 1
        assert page.entries[0].chunk_count == 1

    def test_list_entries_metadata(self, index):
        """Listed entries carry their key, title, metadata and filters."""
        _add(index, "119-hr-1", ["a", "b", "c"])

        entry = index.list_entries(NAMESPACE).entries[0]

        assert entry.key == "119-hr-1"
        assert entry.title == "HR 119-hr-1"
        assert entry.chunk_count == 3
        assert entry.metadata == {"title": "Bill 119-hr-1"}
        assert entry.filter_values["bill_identifier"] == "119-hr-1"

    def test_list_entries_pagination(self, index):
        """Entries page with a cursor until the listing is done."""
        for number in range(1, 6):
            _add(index, f"119-hr-{number}", ["chunk one", "chunk two"])

        keys = []
        cursor = None
        while True:
            page = index.list_entries(NAMESPACE, cursor=cursor, limit=2)
            keys.extend(entry.key for entry in page.entries)
            if page.is_done:
                break
            cursor = page.next_cursor

        assert sorted(keys) == [f"119-hr-{n}" for n in range(1, 6)]

    def test_list_entries_by_namespace(self, index):
        """Namespaces are listed separately."""
        _add(index, "119-hr-1", ["a"])
        index.add("other", "doc", ["b"], metadata={}, filter_values={})

        assert [e.key for e in index.list_entries(NAMESPACE).entries] == ["119-hr-1"]
        assert len(index.list_entries().entries) == 2

    def test_delete_entry(self, index):
        """Deleting removes every chunk, and deleting again is a no-op."""
        entry_id = _add(index, "119-hr-1", ["a", "b"])

        index.delete_entry(entry_id)
        index.delete_entry(entry_id)

        assert _point_count(index, entry_id) == 0
        assert index.list_entries(NAMESPACE).entries == []

    def test_filtered_search(self, index):
        """Filters restrict hits to matching entries."""
        _add(index, "119-hr-1", ["water grants for rural systems"], bill_type="hr")
        _add(index, "119-s-2", ["water grants in the senate"], bill_type="s")

        hits = index.search(NAMESPACE, "water grants", limit=10, filters={"bill_type": "s"})

        assert [hit.key for hit in hits] == ["119-s-2"]
        assert hits[0].chunk_index == 0
        assert hits[0].filter_values["bill_type"] == "s"

    def test_unfiltered_search(self, index):
        """Without filters every entry in the namespace can match."""
        _add(index, "119-hr-1", ["alpha"])
        _add(index, "119-hr-2", ["beta"])

        hits = index.search(NAMESPACE, "alpha", limit=10)

        assert {hit.key for hit in hits} == {"119-hr-1", "119-hr-2"}

    def test_empty_chunks_rejected(self, index):
        """An entry needs at least one chunk."""
        with pytest.raises(ValueError):
            _add(index, "119-hr-1", [])

    def test_embedding_failure(self, qdrant):
        """Embedding errors surface as IndexingError so the step can be retried."""

        def broken_embed(texts):
            raise RuntimeError("embedding service unavailable")

        index = SemanticIndex(qdrant, collection_name="broken", embed_texts=broken_embed, dimensions=4)
        index.ensure_collection()

        with pytest.raises(IndexingError):
            _add(index, "119-hr-1", ["text"])

    def test_ensure_collection_is_idempotent(self, index):
        """Ensuring an existing collection does nothing."""
        index.ensure_collection()

        assert index.client.collection_exists(index.collection_name)
