import logging

from qdrant_client import QdrantClient

from govbills.settings import (
    QDRANT_API_KEY,
    QDRANT_CLOUD_API_KEY,
    QDRANT_CLOUD_URL,
    QDRANT_GRPC_PORT,
    QDRANT_HOST,
    QDRANT_PATH,
    QDRANT_TIMEOUT_SECONDS,
    USE_CLOUD_QDRANT,
)

logger = logging.getLogger(__name__)

_qdrant_client: QdrantClient | None = None


def _connection_mode() -> str:
    if QDRANT_PATH:
        return "Embedded"
    return "Cloud" if USE_CLOUD_QDRANT else "Local"


def _build_client(mode: str) -> QdrantClient:
    if mode == "Embedded":
        logger.info(f"Opening embedded Qdrant at {QDRANT_PATH}")
        return QdrantClient(path=QDRANT_PATH)

    if mode == "Cloud":
        if not QDRANT_CLOUD_URL or not QDRANT_CLOUD_API_KEY:
            raise ValueError(
                "USE_CLOUD_QDRANT is enabled but QDRANT_CLOUD_URL or "
                "QDRANT_CLOUD_API_KEY environment variables are not set"
            )
        logger.info(f"Connecting to Qdrant Cloud: {QDRANT_CLOUD_URL}")
        return QdrantClient(url=QDRANT_CLOUD_URL, api_key=QDRANT_CLOUD_API_KEY, timeout=QDRANT_TIMEOUT_SECONDS)

    logger.info(f"Connecting to Qdrant server: {QDRANT_HOST}")
    return QdrantClient(
        url=QDRANT_HOST,
        port=QDRANT_GRPC_PORT,
        api_key=QDRANT_API_KEY,
        timeout=QDRANT_TIMEOUT_SECONDS,
    )


def get_qdrant_client() -> QdrantClient:
    """
    Shared Qdrant client for the bill chunk collection, created on first use.

    QDRANT_PATH selects an embedded on-disk database, USE_CLOUD_QDRANT a
    Qdrant Cloud cluster, otherwise the QDRANT_HOST server is used. The
    connection is checked once before the client is handed out.

    Raises:
        ValueError: If cloud mode is enabled without its URL and API key
    """
    global _qdrant_client
    if _qdrant_client is not None:
        return _qdrant_client

    mode = _connection_mode()
    client = _build_client(mode)

    try:
        collection_names = [c.name for c in client.get_collections().collections]
    except Exception as e:
        logger.error(f"Qdrant ({mode}) is not reachable: {e}")
        raise

    logger.info(
        f"Qdrant ({mode}) ready with {len(collection_names)} collections",
        extra={"mode": mode, "collections": collection_names},
    )
    _qdrant_client = client
    return client
