import logging
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel

from govbills.bills.models import (
    BillConcept,
    BillSummary,
    BillVersionRecord,
    ExtractedBill,
    Politician,
    SponsorRef,
)
from govbills.bills.versions import VersionComparison, compare_versions, get_bill_status
from govbills.core.exceptions import InvariantViolationError
from govbills.core.store import BillStore

logger = logging.getLogger(__name__)

# Placeholder sponsor name when the introduction action names nobody
UNKNOWN_SPONSOR_NAME = "N/A"


class PersistResult(BaseModel):
    bill_id: str
    concept_created: bool = False
    concept_updated: bool = False
    version_inserted: bool = False
    politicians_created: int = 0


class BillWriter:
    """Writes an enriched bill to the store. Safe to call repeatedly with the same input."""

    def __init__(self, store: BillStore):
        self.store = store

    def persist(self, extracted: ExtractedBill, summary: BillSummary) -> PersistResult:
        """
        Upsert politicians, the bill concept and the version record.

        The concept is only overwritten when the document is not an older
        version than the one already stored, so two versions of the same bill
        persisted out of order still leave the concept on the latest one.

        Args:
            extracted: Parsed document
            summary: Enrichment that passed the quality gate

        Returns:
            PersistResult describing what changed

        Raises:
            InvariantViolationError: If a version would be stored without its bill
        """
        identifier = extracted.identifier
        result = PersistResult(bill_id=identifier.bill_id)

        sponsor_id = None
        if extracted.sponsor and extracted.sponsor.name_id and extracted.sponsor.name != UNKNOWN_SPONSOR_NAME:
            sponsor_id, created = self.upsert_politician(extracted.sponsor, extracted)
            result.politicians_created += int(created)

        for cosponsor in extracted.cosponsors:
            if cosponsor.name_id:
                _, created = self.upsert_politician(cosponsor, extracted)
                result.politicians_created += int(created)

        with self.store.transact():
            existing = self.store.get_bill(identifier.bill_id)

            if existing is None:
                self.store.put_bill(self._build_concept(extracted, summary, sponsor_id))
                result.concept_created = True
            elif compare_versions(identifier.version_code, existing.latest_version_code) != VersionComparison.DOWNGRADE:
                self.store.put_bill(self._build_concept(extracted, summary, sponsor_id, existing))
                result.concept_updated = True
            else:
                logger.info(
                    f"Kept {existing.latest_version_code} as latest for {identifier.bill_id}; "
                    f"{identifier.version_code} is older",
                    extra={"doc_id": identifier.bill_id, "version_code": identifier.version_code},
                )

            result.version_inserted = self.insert_version(self._build_version(extracted))

        logger.info(
            f"Persisted {identifier.bill_id} ({identifier.version_code})",
            extra={"doc_id": identifier.bill_id, "processing_status": "persisted", **result.model_dump()},
        )
        return result

    def insert_version(self, version: BillVersionRecord) -> bool:
        """
        Insert a version unless one with the same bill and code already exists.

        Returns:
            True if the version was inserted

        Raises:
            InvariantViolationError: If the bill the version belongs to doesn't exist
        """
        with self.store.transact():
            if self.store.get_bill(version.bill_id) is None:
                raise InvariantViolationError(
                    f"Refusing to store version {version.id} without bill {version.bill_id}"
                )
            if self.store.get_version(version.bill_id, version.version_code) is not None:
                return False
            self.store.put_version(version)
        return True

    def upsert_politician(self, ref: SponsorRef, extracted: ExtractedBill) -> tuple[str, bool]:
        """Look up a politician by govinfo id, creating a placeholder record if needed."""
        existing = self.store.get_politician(ref.name_id)
        if existing is not None:
            return existing.govinfo_id, False

        self.store.put_politician(
            Politician(govinfo_id=ref.name_id, name=ref.name, chamber=extracted.identifier.chamber)
        )
        logger.debug(f"Created politician {ref.name_id} ({ref.name})")
        return ref.name_id, True

    def _build_concept(
        self,
        extracted: ExtractedBill,
        summary: BillSummary,
        sponsor_id: Optional[str],
        existing: Optional[BillConcept] = None,
    ) -> BillConcept:
        identifier = extracted.identifier
        fields = dict(
            id=identifier.bill_id,
            congress=identifier.congress,
            bill_type=identifier.bill_type,
            bill_number=identifier.bill_number,
            title=extracted.official_title,
            short_title=extracted.short_title,
            sponsor_id=sponsor_id,
            committees=extracted.committees,
            latest_version_code=identifier.version_code,
            latest_action_date=extracted.action_date,
            status=get_bill_status(identifier.version_code),
            summary=summary.summary,
            tagline=summary.tagline,
            impact_areas=summary.impact_areas,
            structured_summary=summary.structured_summary,
            updated_at=datetime.now(timezone.utc),
        )
        if existing is not None:
            fields["created_at"] = existing.created_at
        return BillConcept(**fields)

    def _build_version(self, extracted: ExtractedBill) -> BillVersionRecord:
        identifier = extracted.identifier
        return BillVersionRecord(
            id=BillVersionRecord.make_id(identifier.bill_id, identifier.version_code),
            bill_id=identifier.bill_id,
            version_code=identifier.version_code,
            title=extracted.display_title,
            published_date=extracted.action_date or date.today(),
            full_text=extracted.full_text,
            xml_url=extracted.xml_url,
            text_length=len(extracted.full_text),
        )
