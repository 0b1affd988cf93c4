from .document import to_batches, uri_to_uuid
from .utils import create_collection_if_none

__all__ = [
    "uri_to_uuid",
    "to_batches",
    "create_collection_if_none",
]
