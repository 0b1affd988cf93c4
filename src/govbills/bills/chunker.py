"""Split bill text into overlapping chunks for the semantic index."""

from govbills.settings import CHUNK_OVERLAP, CHUNK_SIZE

SECTION_MARKER = "SEC."
PARAGRAPH_BREAK = "\n\n"
SENTENCE_BREAK = ". "

# Fraction of the window a break must lie beyond to be used
SECTION_THRESHOLD = 0.7
PARAGRAPH_THRESHOLD = 0.7
SENTENCE_THRESHOLD = 0.5


def chunk_spans(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[tuple[int, int]]:
    """
    Compute [start, end) spans covering the whole text.

    Each window of chunk_size characters is pulled back to a natural boundary
    when one lies far enough into the window: a section marker (the chunk ends
    just before it), else a paragraph break, else a sentence break (both kept
    at the end of the chunk). Consecutive spans overlap by up to `overlap`
    characters and starts strictly increase.

    Args:
        text: Text to split
        chunk_size: Maximum span length
        overlap: Characters repeated between consecutive spans

    Returns:
        Spans in order; empty for empty text

    Raises:
        ValueError: If chunk_size or overlap are out of range
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if not 0 <= overlap < chunk_size:
        raise ValueError(f"overlap must be in [0, chunk_size), got {overlap}")

    length = len(text)
    if length == 0:
        return []
    if length <= chunk_size:
        return [(0, length)]

    spans = []
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            end = _pull_back(text, start, end)
        spans.append((start, end))
        if end >= length:
            break
        start = max(start + 1, end - overlap)
    return spans


def _pull_back(text: str, start: int, end: int) -> int:
    window = end - start

    # A marker may straddle the window end; it still starts inside the window
    idx = text.rfind(SECTION_MARKER, start, end + len(SECTION_MARKER) - 1)
    if idx > start + window * SECTION_THRESHOLD:
        return idx

    idx = text.rfind(PARAGRAPH_BREAK, start, end)
    if idx > start + window * PARAGRAPH_THRESHOLD:
        return idx + len(PARAGRAPH_BREAK)

    idx = text.rfind(SENTENCE_BREAK, start, end)
    if idx > start + window * SENTENCE_THRESHOLD:
        return idx + len(SENTENCE_BREAK)

    return end


def chunk_bill_text(text: str, chunk_size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Chunk text along natural boundaries, dropping chunks that are only whitespace."""
    chunks = []
    for start, end in chunk_spans(text, chunk_size, overlap):
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
    return chunks
