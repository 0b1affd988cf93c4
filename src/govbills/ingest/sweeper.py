"""Repair drift between the bill store and what is derived from it.

Both sweeps page with cursors that survive concurrent deletes and can be
re-run at any time: deleting something that is already gone is a no-op.
"""

import logging
from typing import Optional

from govbills.bills.identifiers import split_bill_id
from govbills.core.semantic_index import IndexEntry, SemanticIndex
from govbills.core.store import BillStore
from govbills.settings import BILL_NAMESPACE

logger = logging.getLogger(__name__)


def _entry_bill_id(entry: IndexEntry) -> Optional[str]:
    """Bill identifier of an index entry: the bill_identifier filter, else the key."""
    return entry.filter_values.get("bill_identifier") or entry.key or None


def clean_orphan_index_entries(
    store: BillStore,
    index: SemanticIndex,
    namespace: str = BILL_NAMESPACE,
    page_size: int = 100,
) -> dict:
    """Delete index entries whose bill no longer exists in the store.

    Entries whose identifier doesn't look like "<congress>-<type>-<number>" are
    left alone.

    Args:
        store: Bill store
        index: Semantic index to clean
        namespace: Index namespace holding bill entries
        page_size: Entries fetched per page

    Returns:
        {"scanned": entries inspected, "deleted": entries removed}
    """
    scanned = 0
    deleted = 0
    cursor = None

    while True:
        page = index.list_entries(namespace=namespace, cursor=cursor, limit=page_size)

        for entry in page.entries:
            scanned += 1
            bill_id = _entry_bill_id(entry)
            if bill_id is None or split_bill_id(bill_id) is None:
                logger.debug(f"Skipping index entry with unusable identifier: {entry.key}")
                continue

            if store.get_bill(bill_id) is None:
                index.delete_entry(entry.entry_id)
                deleted += 1
                logger.info(
                    f"Deleted orphan index entry {bill_id}",
                    extra={"doc_id": bill_id, "entry_id": entry.entry_id, "event_type": "orphan_deleted"},
                )

        if page.is_done:
            break
        cursor = page.next_cursor

    logger.info(f"Index sweep complete: scanned {scanned}, deleted {deleted}")
    return {"scanned": scanned, "deleted": deleted}


def clean_orphan_bill_versions(store: BillStore, page_size: int = 100) -> dict:
    """Delete version records whose bill no longer exists.

    Returns:
        {"scanned": versions inspected, "deleted": versions removed}
    """
    scanned = 0
    deleted = 0
    cursor = None

    while True:
        versions, cursor = store.list_versions(cursor=cursor, limit=page_size)

        for version in versions:
            scanned += 1
            if store.get_bill(version.bill_id) is None:
                if store.delete_version(version.id):
                    deleted += 1
                    logger.info(
                        f"Deleted orphan version {version.id}",
                        extra={"doc_id": version.bill_id, "version_code": version.version_code},
                    )

        if cursor is None:
            break

    logger.info(f"Version sweep complete: scanned {scanned}, deleted {deleted}")
    return {"scanned": scanned, "deleted": deleted}
