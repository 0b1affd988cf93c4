"""Tests for the summary quality gate."""

from govbills.processing.bill_summaries import check_summary_quality
from govbills.processing.bill_summaries.quality_gate import (
    MIN_SUMMARY_CHARS,
    REASON_STRUCTURED_EMPTY,
    REASON_SUMMARY_TOO_SHORT,
)
from govbills.processing.bill_summaries.summary_generator import fallback_summary
from tests.govbills.factories import make_extracted, make_summary


class TestCheckSummaryQuality:
    def test_accepts_good_summary(self):
        """Summaries long enough with sections pass."""
        verdict = check_summary_quality(make_summary())

        assert verdict.accepted is True
        assert verdict.reason is None

    def test_length_boundary(self):
        """Exactly the minimum length passes; one character less fails."""
        assert check_summary_quality(make_summary(summary="a" * MIN_SUMMARY_CHARS)).accepted is True

        verdict = check_summary_quality(make_summary(summary="a" * (MIN_SUMMARY_CHARS - 1)))
        assert verdict.accepted is False
        assert verdict.reason == REASON_SUMMARY_TOO_SHORT

    def test_whitespace_does_not_count(self):
        """Padding a short summary with whitespace doesn't help."""
        verdict = check_summary_quality(make_summary(summary="  short  " + " " * 60))

        assert verdict.reason == REASON_SUMMARY_TOO_SHORT

    def test_empty_structured_summary(self):
        """A summary without sections is rejected."""
        verdict = check_summary_quality(make_summary(sections=0))

        assert verdict.accepted is False
        assert verdict.reason == REASON_STRUCTURED_EMPTY

    def test_fallback_is_rejected(self):
        """The template summary never passes the gate."""
        verdict = check_summary_quality(fallback_summary(make_extracted()))

        assert verdict.accepted is False
        assert verdict.reason == REASON_STRUCTURED_EMPTY
