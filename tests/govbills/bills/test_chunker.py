"""Tests for splitting bill text into index chunks."""

import pytest

from govbills.bills.chunker import chunk_bill_text, chunk_spans


def _assert_covers(text: str, spans: list[tuple[int, int]]):
    assert spans[0][0] == 0
    assert spans[-1][1] == len(text)
    for (prev_start, prev_end), (start, end) in zip(spans, spans[1:]):
        assert start > prev_start
        assert start <= prev_end
        assert end > start


class TestChunkSpans:
    def test_empty_text(self):
        """Empty text has no chunks."""
        assert chunk_spans("", chunk_size=100, overlap=10) == []

    def test_short_text_is_one_span(self):
        """Text shorter than a chunk is returned whole."""
        assert chunk_spans("SEC. 1. Short.", chunk_size=100, overlap=10) == [(0, 14)]

    def test_hard_cuts_without_boundaries(self):
        """Without natural breaks chunks are cut at the size limit and overlap."""
        text = "a" * 250

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans == [(0, 100), (90, 190), (180, 250)]

    def test_ends_before_section_marker(self):
        """A section marker late in the window starts the next chunk."""
        text = "a" * 80 + "SEC. 2. " + "b" * 100

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans[0] == (0, 80)
        assert text[spans[0][1]:].startswith("SEC. 2.")
        _assert_covers(text, spans)

    def test_section_marker_straddling_window_end(self):
        """A marker that starts inside the window but ends after it still counts."""
        text = "a" * 98 + "SEC. 3. " + "b" * 50

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans[0] == (0, 98)

    def test_early_section_marker_is_ignored(self):
        """Markers in the first part of the window would make chunks too small."""
        text = "a" * 20 + "SEC. 2. " + "b" * 200

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans[0] == (0, 100)

    def test_paragraph_break(self):
        """Paragraph breaks are kept at the end of the chunk."""
        text = "x" * 75 + "\n\n" + "y" * 100

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans[0] == (0, 77)

    def test_sentence_break(self):
        """Sentence breaks past the middle of the window end the chunk."""
        text = "a" * 60 + ". " + "b" * 100

        spans = chunk_spans(text, chunk_size=100, overlap=10)

        assert spans[0] == (0, 62)

    def test_large_overlap_still_terminates(self):
        """Starts always move forward even when breaks pull chunks back."""
        text = ("Sentence here. " * 200).strip()

        spans = chunk_spans(text, chunk_size=50, overlap=49)

        _assert_covers(text, spans)

    @pytest.mark.parametrize(
        "chunk_size, overlap",
        [(0, 0), (-5, 0), (100, 100), (100, 150), (100, -1)],
    )
    def test_invalid_parameters(self, chunk_size, overlap):
        """Chunk size must be positive and overlap smaller than it."""
        with pytest.raises(ValueError):
            chunk_spans("some text", chunk_size=chunk_size, overlap=overlap)


class TestChunkBillText:
    def test_chunks_are_stripped_and_cover_text(self):
        """Every word of the bill lands in at least one chunk."""
        text = " ".join(f"SEC. {i}. The Secretary shall act under provision {i}." for i in range(1, 60))

        chunks = chunk_bill_text(text, chunk_size=200, overlap=20)

        assert len(chunks) > 1
        assert all(chunk == chunk.strip() for chunk in chunks)
        assert all(len(chunk) <= 200 for chunk in chunks)
        joined = " ".join(chunks)
        for i in range(1, 60):
            assert f"provision {i}." in joined

    def test_whitespace_only_text(self):
        """Whitespace never becomes a chunk."""
        assert chunk_bill_text("   \n\n  ", chunk_size=100, overlap=10) == []
