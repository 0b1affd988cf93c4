import uuid
from typing import Iterable, Iterator, List, TypeVar

T = TypeVar("T")

# Namespace UUID for generating deterministic UUIDs from keys
NAMESPACE_GOVBILLS = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")


def uri_to_uuid(uri: str) -> str:
    """Convert a URI or key to a deterministic UUID string.

    Args:
        uri: The key to convert (e.g., "bills/119-hr-1" or "bills/119-hr-1#3")

    Returns:
        UUID string generated from the key
    """
    return str(uuid.uuid5(NAMESPACE_GOVBILLS, uri))


def to_batches(items: Iterable[T], batch_size: int) -> Iterator[List[T]]:
    """Yield consecutive lists of at most batch_size items."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batch = []
    for item in items:
        batch.append(item)
        if len(batch) == batch_size:
            yield batch
            batch = []
    if batch:
        yield batch
