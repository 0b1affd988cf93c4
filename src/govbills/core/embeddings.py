"""Dense embeddings of bill chunks via Azure OpenAI."""

import logging
import os
import threading
from typing import List

from openai import APIConnectionError, APITimeoutError, AzureOpenAI, InternalServerError, RateLimitError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from govbills.core.document import to_batches
from govbills.settings import EMBEDDING_BATCH_SIZE, EMBEDDING_DEPLOYMENT, EMBEDDING_DIMENSIONS

logger = logging.getLogger(__name__)

_openai_client: AzureOpenAI | None = None
_openai_client_lock = threading.Lock()

# text-embedding-3 accepts ~8K tokens per input
MAX_EMBEDDING_CHARS = 30000

EMBEDDING_MAX_ATTEMPTS = 6

TRANSIENT_EMBEDDING_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError, InternalServerError)


def get_openai_client() -> AzureOpenAI:
    """Lazy load the embedding client (thread-safe; batch workers share it)."""
    global _openai_client
    if _openai_client is None:
        with _openai_client_lock:
            if _openai_client is None:
                _openai_client = AzureOpenAI(
                    api_key=os.environ.get("AZURE_OPENAI_API_KEY"),
                    api_version="2024-02-01",
                    azure_endpoint=os.environ.get("AZURE_OPENAI_ENDPOINT"),
                    max_retries=0,
                    timeout=60.0,
                )
                logger.info(f"Azure OpenAI embedding client initialised for {EMBEDDING_DEPLOYMENT}")
    return _openai_client


@retry(
    stop=stop_after_attempt(EMBEDDING_MAX_ATTEMPTS),
    wait=wait_random_exponential(multiplier=1, max=60),
    retry=retry_if_exception_type(TRANSIENT_EMBEDDING_ERRORS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def _embed_batch(client: AzureOpenAI, texts: List[str]) -> List[List[float]]:
    response = client.embeddings.create(
        model=EMBEDDING_DEPLOYMENT,
        input=texts,
        dimensions=EMBEDDING_DIMENSIONS,
    )
    return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]


def generate_dense_embeddings_batch(texts: List[str], client: AzureOpenAI | None = None) -> List[List[float]]:
    """
    Embed texts, EMBEDDING_BATCH_SIZE inputs per request.

    Args:
        texts: Chunk texts; over-long ones are truncated
        client: Optional client, defaults to the shared Azure OpenAI client

    Returns:
        One vector per text, in input order
    """
    if not texts:
        return []

    client = client or get_openai_client()
    vectors: List[List[float]] = []
    for batch in to_batches([text[:MAX_EMBEDDING_CHARS] for text in texts], EMBEDDING_BATCH_SIZE):
        vectors.extend(_embed_batch(client, batch))

    logger.debug(f"Embedded {len(texts)} texts in {len(vectors)} vectors")
    return vectors
