import logging
from typing import Optional

from qdrant_client import QdrantClient
from qdrant_client.models import PayloadSchemaType

logger = logging.getLogger(__name__)


def set_logging_level(level: int) -> None:
    """Set logging level for all govbills loggers.

    Args:
        level: The logging level to set
    """
    loggers = [logging.getLogger(name) for name in logging.root.manager.loggerDict]
    for logger_ in loggers:
        if logger_.name.startswith("govbills") or logger_.name == "__main__":
            logger_.setLevel(level)

    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def create_collection_if_none(
    client: QdrantClient,
    schema: dict,
    payload_indexes: Optional[dict[str, PayloadSchemaType]] = None,
) -> bool:
    """Creates a collection in Qdrant if it does not already exist.

    Args:
        client: Qdrant client to use
        schema: Collection schema dict with collection_name and vectors_config
        payload_indexes: Optional mapping of payload field name to index type

    Returns:
        True if the collection was created, False if it already existed
    """
    collection_name = schema["collection_name"]
    logger.info(f"Checking if collection {collection_name} exists")

    if client.collection_exists(collection_name):
        logger.info(f"Collection {collection_name} already exists. Continuing")
        return False

    logger.info(f"Creating collection {collection_name}")
    client.create_collection(**schema)

    for field_name, field_schema in (payload_indexes or {}).items():
        client.create_payload_index(
            collection_name=collection_name,
            field_name=field_name,
            field_schema=field_schema,
        )

    logger.info(f"Created collection {collection_name}")
    return True
