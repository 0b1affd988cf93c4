"""Persistent state for the bill pipeline, backed by a diskcache directory."""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Type, TypeVar

from diskcache import Cache
from pydantic import BaseModel

from govbills.bills.models import BillConcept, BillVersionRecord, Politician, SummaryAttemptRecord
from govbills.core.models import ensure_utc
from govbills.settings import STORE_DIR

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

BILL_PREFIX = "bill:"
VERSION_PREFIX = "version:"
VERSION_URL_PREFIX = "version_url:"
POLITICIAN_PREFIX = "politician:"
SUMMARY_ATTEMPT_PREFIX = "summary_attempt:"
LAST_CHECKED_KEY = "meta:last_checked"


class BillStore:
    """
    Keyed storage for bills, their versions, politicians, rejected summaries
    and the discovery watermark.

    Records are stored as JSON-mode dicts under prefixed string keys, so keys
    sort naturally and listings can page with the last key seen as cursor.
    """

    def __init__(self, directory: Optional[str] = None, cache: Optional[Cache] = None):
        if cache is None:
            directory = directory or STORE_DIR
            Path(directory).mkdir(parents=True, exist_ok=True)
            cache = Cache(directory)
        self.cache = cache

        logger.debug(f"Bill store opened at {self.cache.directory}", extra={"store_path": self.cache.directory})

    @contextmanager
    def transact(self) -> Iterator[None]:
        """Group writes so they commit together or not at all."""
        with self.cache.transact():
            yield

    # Bills

    def get_bill(self, bill_id: str) -> Optional[BillConcept]:
        return self._load(BillConcept, BILL_PREFIX + bill_id)

    def put_bill(self, bill: BillConcept) -> None:
        self._save(BILL_PREFIX + bill.id, bill)

    def delete_bill(self, bill_id: str) -> bool:
        return self.cache.delete(BILL_PREFIX + bill_id)

    def list_bills(self, cursor: Optional[str] = None, limit: int = 100) -> tuple[list[BillConcept], Optional[str]]:
        return self._page(BillConcept, BILL_PREFIX, cursor, limit)

    # Versions

    def get_version(self, bill_id: str, version_code: str) -> Optional[BillVersionRecord]:
        return self._load(BillVersionRecord, VERSION_PREFIX + BillVersionRecord.make_id(bill_id, version_code))

    def get_version_by_url(self, xml_url: str) -> Optional[BillVersionRecord]:
        version_id = self.cache.get(VERSION_URL_PREFIX + xml_url)
        if version_id is None:
            return None
        return self._load(BillVersionRecord, VERSION_PREFIX + version_id)

    def put_version(self, version: BillVersionRecord) -> None:
        """Write a version and its URL index entry together."""
        with self.cache.transact():
            self._save(VERSION_PREFIX + version.id, version)
            self.cache.set(VERSION_URL_PREFIX + version.xml_url, version.id)

    def delete_version(self, version_id: str) -> bool:
        with self.cache.transact():
            version = self._load(BillVersionRecord, VERSION_PREFIX + version_id)
            if version is None:
                return False
            self.cache.delete(VERSION_PREFIX + version_id)
            if self.cache.get(VERSION_URL_PREFIX + version.xml_url) == version_id:
                self.cache.delete(VERSION_URL_PREFIX + version.xml_url)
        return True

    def list_versions(
        self, cursor: Optional[str] = None, limit: int = 100
    ) -> tuple[list[BillVersionRecord], Optional[str]]:
        return self._page(BillVersionRecord, VERSION_PREFIX, cursor, limit)

    # Politicians

    def get_politician(self, govinfo_id: str) -> Optional[Politician]:
        return self._load(Politician, POLITICIAN_PREFIX + govinfo_id)

    def put_politician(self, politician: Politician) -> None:
        self._save(POLITICIAN_PREFIX + politician.govinfo_id, politician)

    # Rejected summaries

    def add_summary_attempt(self, record: SummaryAttemptRecord) -> str:
        # Timestamp first so listings come back in insertion order
        key = f"{SUMMARY_ATTEMPT_PREFIX}{record.created_at.isoformat()}:{uuid.uuid4()}"
        self._save(key, record)
        return key

    def list_summary_attempts(self) -> list[SummaryAttemptRecord]:
        records = []
        cursor = None
        while True:
            page, cursor = self._page(SummaryAttemptRecord, SUMMARY_ATTEMPT_PREFIX, cursor, 100)
            records.extend(page)
            if cursor is None:
                return records

    # Watermark

    def get_last_checked(self) -> Optional[datetime]:
        value = self.cache.get(LAST_CHECKED_KEY)
        return ensure_utc(value) if value else None

    def set_last_checked(self, timestamp: datetime) -> None:
        self.cache.set(LAST_CHECKED_KEY, ensure_utc(timestamp).isoformat())
        logger.info(f"Watermark set to {timestamp.isoformat()}", extra={"event_type": "watermark"})

    def close(self) -> None:
        self.cache.close()

    def _load(self, model: Type[M], key: str) -> Optional[M]:
        data = self.cache.get(key)
        if data is None:
            return None
        return model.model_validate(data)

    def _save(self, key: str, record: BaseModel) -> None:
        self.cache.set(key, record.model_dump(mode="json"))

    def _page(self, model: Type[M], prefix: str, cursor: Optional[str], limit: int) -> tuple[list[M], Optional[str]]:
        """
        One page of records under a prefix, ordered by key.

        The cursor is the last key returned, so records deleted or added between
        pages never shift the remaining ones.
        """
        keys = sorted(
            key
            for key in self.cache.iterkeys()
            if isinstance(key, str) and key.startswith(prefix) and (cursor is None or key > cursor)
        )
        page_keys = keys[:limit]

        records = []
        for key in page_keys:
            record = self._load(model, key)
            # Deleted since the key scan
            if record is not None:
                records.append(record)

        next_cursor = page_keys[-1] if len(keys) > limit else None
        return records, next_cursor
