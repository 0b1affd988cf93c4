"""Qdrant collection schema for bill text chunks."""

from qdrant_client.models import Distance, PayloadSchemaType, VectorParams

from govbills.settings import BILL_CHUNK_COLLECTION, EMBEDDING_DIMENSIONS

# Filter names written with every bill entry; the sweeper reads bill_identifier back
BILL_FILTER_NAMES = ["bill_identifier", "bill_type", "congress", "sponsor"]


def get_bill_chunk_schema(
    collection_name: str = BILL_CHUNK_COLLECTION,
    dimensions: int = EMBEDDING_DIMENSIONS,
) -> dict:
    """
    Schema for the bill_chunk collection.

    Vectors:
    - dense: OpenAI embeddings (COSINE distance) of one chunk of bill text

    Payload:
    - entry_id / namespace / key: the logical index entry a chunk belongs to
    - chunk_index / chunk_count: read order within the entry (chunk 0 marks the entry)
    - text: the chunk itself
    - metadata: bill titles, summary, tagline etc. for display
    - filters: bill_identifier, bill_type, congress, sponsor for filtered search
    """
    return {
        "collection_name": collection_name,
        "vectors_config": {
            "dense": VectorParams(
                size=dimensions,
                distance=Distance.COSINE,
            )
        },
    }


def get_bill_chunk_payload_indexes() -> dict[str, PayloadSchemaType]:
    """Payload fields indexed for exact-match filtering and entry scans."""
    indexes = {
        "entry_id": PayloadSchemaType.KEYWORD,
        "namespace": PayloadSchemaType.KEYWORD,
        "key": PayloadSchemaType.KEYWORD,
        "chunk_index": PayloadSchemaType.INTEGER,
    }
    for name in BILL_FILTER_NAMES:
        indexes[f"filters.{name}"] = PayloadSchemaType.KEYWORD
    return indexes
