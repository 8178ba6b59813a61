import pytest

from services.document_processing.CollectionManager import CollectionManager
from shared.exceptions.errors import VectorStoreError

EXPECTED_INDEXES = [
    ("user_id", "keyword"),
    ("project_id", "integer"),
    ("document_id", "integer"),
    ("chunk_id", "integer"),
]


class TestCollectionManager:
    """Test cases for CollectionManager."""

    @pytest.mark.asyncio
    async def test_existing_collection_is_left_alone(self, helper_config, rag_client):
        manager = CollectionManager(helper_config=helper_config, rag_client=rag_client)

        assert await manager.do_ensure_collection() is False
        assert rag_client.calls == [("get_collection", None)]

    @pytest.mark.asyncio
    async def test_missing_collection_is_created_with_indexes(self, helper_config, rag_client):
        rag_client.collection_exists = False
        manager = CollectionManager(helper_config=helper_config, rag_client=rag_client)

        assert await manager.do_ensure_collection() is True
        assert rag_client.calls[1] == ("create_collection", (768, "Cosine"))
        assert rag_client.indexes == EXPECTED_INDEXES

    @pytest.mark.asyncio
    async def test_concurrently_created_collection_still_gets_indexes(self, helper_config, rag_client):
        rag_client.collection_exists = False
        rag_client.create_returns = False
        manager = CollectionManager(helper_config=helper_config, rag_client=rag_client)

        assert await manager.do_ensure_collection() is True
        assert rag_client.indexes == EXPECTED_INDEXES

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, helper_config, rag_client):
        rag_client.fail_get_collection = True
        manager = CollectionManager(helper_config=helper_config, rag_client=rag_client)

        with pytest.raises(VectorStoreError):
            await manager.do_ensure_collection()
        assert [name for name, _ in rag_client.calls] == ["get_collection"]

    @pytest.mark.asyncio
    async def test_vector_settings_from_environment(self, helper_config, rag_client, monkeypatch):
        monkeypatch.setenv("RAG_VECTOR_SIZE", "1024")
        monkeypatch.setenv("EMBED_DISTANCE", "Dot")
        rag_client.collection_exists = False
        manager = CollectionManager(helper_config=helper_config, rag_client=rag_client)

        await manager.do_ensure_collection()

        assert ("create_collection", (1024, "Dot")) in rag_client.calls
