import logging

from govbills.bills.identifiers import parse_bill_url
from govbills.bills.models import IngestionDecision
from govbills.bills.versions import VersionComparison, compare_versions, get_version_priority
from govbills.core.exceptions import BillIdentifierError
from govbills.core.store import BillStore

logger = logging.getLogger(__name__)


class IngestionDecisionGate:
    """Decides whether a discovered document should be enriched and stored."""

    def __init__(self, store: BillStore):
        self.store = store

    def decide(self, xml_url: str) -> IngestionDecision:
        """
        Compare a discovered document against stored state.

        Read-only. Exactly-seen URLs are skipped, new bills are processed, and
        known bills are processed only when the document is strictly further
        along than the stored latest version.

        Args:
            xml_url: URL of the discovered XML document

        Returns:
            IngestionDecision with a human-readable reason
        """
        if self.store.get_version_by_url(xml_url) is not None:
            return IngestionDecision(should_process=False, reason="Exact file already processed")

        try:
            identifier = parse_bill_url(xml_url)
        except BillIdentifierError as e:
            # Let extraction have the final say on documents with unusual names
            logger.warning(f"Could not determine priority for {xml_url}: {e}", extra={"xml_url": xml_url})
            return IngestionDecision(should_process=True, reason=f"Error determining priority: {e}")

        existing = self.store.get_bill(identifier.bill_id)
        if existing is None:
            return IngestionDecision(should_process=True, reason="New bill")

        new_priority = get_version_priority(identifier.version_code)
        current_priority = get_version_priority(existing.latest_version_code)
        comparison = compare_versions(identifier.version_code, existing.latest_version_code)

        if comparison == VersionComparison.UPGRADE:
            reason = f"Better version: {new_priority} > {current_priority}"
        elif comparison == VersionComparison.SAME:
            reason = f"Same version priority: {new_priority} = {current_priority}"
        else:
            reason = f"Lower version priority: {new_priority} < {current_priority}"

        return IngestionDecision(
            should_process=comparison == VersionComparison.UPGRADE,
            reason=reason,
            existing_bill_id=existing.id,
        )
