from pydantic import BaseModel

from govbills.bills.models import BillSummary

MIN_SUMMARY_CHARS = 40

REASON_SUMMARY_TOO_SHORT = "Summary missing or too short"
REASON_STRUCTURED_EMPTY = "Structured summary empty"


class QualityVerdict(BaseModel):
    accepted: bool
    reason: str | None = None


def check_summary_quality(summary: BillSummary) -> QualityVerdict:
    """Reject summaries that are blank, shorter than MIN_SUMMARY_CHARS, or have no sections."""
    if len(summary.summary.strip()) < MIN_SUMMARY_CHARS:
        return QualityVerdict(accepted=False, reason=REASON_SUMMARY_TOO_SHORT)
    if not summary.structured_summary:
        return QualityVerdict(accepted=False, reason=REASON_STRUCTURED_EMPTY)
    return QualityVerdict(accepted=True)
