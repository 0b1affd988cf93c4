"""Qdrant-backed semantic index of bill text.

One logical *entry* per (namespace, key) holds an ordered list of text chunks.
Every chunk is a Qdrant point with a deterministic id, so re-adding the same key
overwrites in place and deleting an entry that is already gone is a no-op.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field
from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import (
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointStruct,
    Range,
)

from govbills.bills.qdrant_schema import get_bill_chunk_payload_indexes, get_bill_chunk_schema
from govbills.core.document import uri_to_uuid
from govbills.core.embeddings import generate_dense_embeddings_batch
from govbills.core.exceptions import IndexingError
from govbills.core.utils import create_collection_if_none
from govbills.settings import BILL_CHUNK_COLLECTION, EMBEDDING_DIMENSIONS

logger = logging.getLogger(__name__)

# Errors from the Qdrant transport that a retry can fix
QDRANT_TRANSIENT_ERRORS = (
    UnexpectedResponse,
    ResponseHandlingException,
    ConnectionError,
    TimeoutError,
)


class IndexEntry(BaseModel):
    entry_id: str
    namespace: str
    key: str
    title: Optional[str] = None
    chunk_count: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
    filter_values: dict[str, str] = Field(default_factory=dict)


class IndexPage(BaseModel):
    entries: list[IndexEntry]
    next_cursor: Optional[Any] = None

    @property
    def is_done(self) -> bool:
        return self.next_cursor is None


class SearchHit(BaseModel):
    entry_id: str
    key: str
    chunk_index: int
    text: str
    score: float
    filter_values: dict[str, str] = Field(default_factory=dict)


def entry_id_for(namespace: str, key: str) -> str:
    return uri_to_uuid(f"{namespace}/{key}")


def _chunk_point_id(namespace: str, key: str, chunk_index: int) -> str:
    return uri_to_uuid(f"{namespace}/{key}#{chunk_index}")


def _entry_filter(entry_id: str) -> Filter:
    return Filter(must=[FieldCondition(key="entry_id", match=MatchValue(value=entry_id))])


class SemanticIndex:
    """add / search / list / delete over the bill chunk collection."""

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str = BILL_CHUNK_COLLECTION,
        embed_texts: Callable[[list[str]], list[list[float]]] = generate_dense_embeddings_batch,
        dimensions: int = EMBEDDING_DIMENSIONS,
    ):
        self.client = client
        self.collection_name = collection_name
        self.embed_texts = embed_texts
        self.dimensions = dimensions

    def ensure_collection(self) -> None:
        create_collection_if_none(
            self.client,
            get_bill_chunk_schema(self.collection_name, self.dimensions),
            get_bill_chunk_payload_indexes(),
        )

    def add(
        self,
        namespace: str,
        key: str,
        chunks: list[str],
        metadata: dict[str, Any],
        filter_values: dict[str, str],
        title: Optional[str] = None,
    ) -> str:
        """
        Store chunks under (namespace, key), replacing any previous entry for the key.

        Args:
            namespace: Logical namespace (all bills share one)
            key: Entry key, e.g. "119-hr-1"
            chunks: Ordered chunk texts
            metadata: Display metadata stored with every chunk
            filter_values: Filter name -> value, used for filtered search and sweeping
            title: Optional human readable title

        Returns:
            The entry id (deterministic for namespace/key)

        Raises:
            IndexingError: If embedding or the Qdrant write fails transiently
        """
        if not chunks:
            raise ValueError(f"Cannot index {namespace}/{key} without chunks")

        entry_id = entry_id_for(namespace, key)
        created_at = datetime.now(timezone.utc).isoformat()

        try:
            vectors = self.embed_texts(chunks)
        except Exception as e:
            raise IndexingError(f"Embedding failed for {namespace}/{key}: {e}") from e

        points = [
            PointStruct(
                id=_chunk_point_id(namespace, key, i),
                vector={"dense": vector},
                payload={
                    "entry_id": entry_id,
                    "namespace": namespace,
                    "key": key,
                    "title": title,
                    "chunk_index": i,
                    "chunk_count": len(chunks),
                    "text": chunk,
                    "metadata": metadata,
                    "filters": filter_values,
                    "created_at": created_at,
                },
            )
            for i, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]

        try:
            self.client.upsert(collection_name=self.collection_name, points=points, wait=True)

            # A shorter re-add leaves stale tail chunks from the previous entry
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(
                    filter=Filter(
                        must=[
                            FieldCondition(key="entry_id", match=MatchValue(value=entry_id)),
                            FieldCondition(key="chunk_index", range=Range(gte=len(chunks))),
                        ]
                    )
                ),
                wait=True,
            )
        except QDRANT_TRANSIENT_ERRORS as e:
            raise IndexingError(f"Qdrant write failed for {namespace}/{key}: {e}") from e

        logger.info(
            f"Indexed {namespace}/{key} as {len(chunks)} chunks",
            extra={"entry_id": entry_id, "doc_id": key, "chunk_count": len(chunks)},
        )
        return entry_id

    def search(
        self,
        namespace: str,
        query: str,
        limit: int = 10,
        filters: Optional[dict[str, str]] = None,
    ) -> list[SearchHit]:
        """Similarity search over chunks in a namespace, optionally filtered."""
        conditions = [FieldCondition(key="namespace", match=MatchValue(value=namespace))]
        for name, value in (filters or {}).items():
            conditions.append(FieldCondition(key=f"filters.{name}", match=MatchValue(value=value)))

        try:
            vector = self.embed_texts([query])[0]
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                using="dense",
                query_filter=Filter(must=conditions),
                limit=limit,
                with_payload=True,
            )
        except QDRANT_TRANSIENT_ERRORS as e:
            raise IndexingError(f"Qdrant search failed: {e}") from e

        return [
            SearchHit(
                entry_id=point.payload["entry_id"],
                key=point.payload["key"],
                chunk_index=point.payload["chunk_index"],
                text=point.payload["text"],
                score=point.score,
                filter_values=point.payload.get("filters") or {},
            )
            for point in response.points
        ]

    def list_entries(
        self,
        namespace: Optional[str] = None,
        cursor: Optional[Any] = None,
        limit: int = 100,
    ) -> IndexPage:
        """
        Page through entries. The cursor is a point id, so it stays valid when
        entries are deleted between pages.
        """
        conditions = [FieldCondition(key="chunk_index", match=MatchValue(value=0))]
        if namespace is not None:
            conditions.append(FieldCondition(key="namespace", match=MatchValue(value=namespace)))

        try:
            points, next_offset = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=Filter(must=conditions),
                limit=limit,
                offset=cursor,
                with_payload=True,
                with_vectors=False,
            )
        except QDRANT_TRANSIENT_ERRORS as e:
            raise IndexingError(f"Qdrant scroll failed: {e}") from e

        entries = [
            IndexEntry(
                entry_id=point.payload["entry_id"],
                namespace=point.payload["namespace"],
                key=point.payload["key"],
                title=point.payload.get("title"),
                chunk_count=point.payload.get("chunk_count", 0),
                metadata=point.payload.get("metadata") or {},
                filter_values=point.payload.get("filters") or {},
            )
            for point in points
        ]
        return IndexPage(entries=entries, next_cursor=next_offset)

    def delete_entry(self, entry_id: str) -> None:
        """Delete every chunk of an entry. Deleting a missing entry is a no-op."""
        try:
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=_entry_filter(entry_id)),
                wait=True,
            )
        except QDRANT_TRANSIENT_ERRORS as e:
            raise IndexingError(f"Qdrant delete failed for entry {entry_id}: {e}") from e

        logger.debug(f"Deleted index entry {entry_id}")
