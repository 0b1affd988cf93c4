import pytest
from qdrant_client import QdrantClient

from govbills.core.semantic_index import SemanticIndex
from govbills.core.store import BillStore
from tests.govbills.factories import fake_embed

TEST_DIMENSIONS = 4


@pytest.fixture
def store(tmp_path):
    bill_store = BillStore(str(tmp_path / "store"))
    yield bill_store
    bill_store.close()


@pytest.fixture
def qdrant():
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def index(qdrant):
    semantic_index = SemanticIndex(
        qdrant,
        collection_name="bill_chunk_test",
        embed_texts=fake_embed,
        dimensions=TEST_DIMENSIONS,
    )
    semantic_index.ensure_collection()
    return semantic_index
