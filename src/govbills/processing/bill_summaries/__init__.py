"""Bill summary generation and quality checks."""

from govbills.processing.bill_summaries.quality_gate import QualityVerdict, check_summary_quality
from govbills.processing.bill_summaries.summary_generator import BillSummaryGenerator

__all__ = ["BillSummaryGenerator", "QualityVerdict", "check_summary_quality"]
