import pytest
from sqlalchemy import select

from conftest import OWNER_ID
from services.document_processing.ChunkDiff import compute_chunk_diff
from services.document_processing.StoreSynchronizer import StoreSynchronizer
from shared.db.models import Chunk, Document
from shared.exceptions.errors import VectorStoreError
from shared.models.document import ChunkCandidate


def _chunk_rows(session_factory, document_id):
    with session_factory() as session:
        rows = session.execute(select(Chunk).where(Chunk.document_id == document_id).order_by(Chunk.id)).scalars().all()
        return [(row.id, row.content) for row in rows]


def _status(session_factory, document_id):
    with session_factory() as session:
        return session.get(Document, document_id).status


class TestStoreSynchronizer:
    """Test cases for StoreSynchronizer."""

    @pytest.fixture
    def synchronizer(self, helper_config, repository, rag_client):
        return StoreSynchronizer(helper_config=helper_config, repository=repository, rag_client=rag_client)

    async def _apply(self, synchronizer, repository, document_id, texts):
        document = repository.fetch_document(document_id)
        candidates = [ChunkCandidate.from_text(index=i, text=t) for i, t in enumerate(texts)]
        diff = compute_chunk_diff(candidates, document.chunks)
        vectors = [[float(i), 1.0] for i in range(len(diff.to_embed))]
        return await synchronizer.do_sync(document, diff.to_embed, vectors, diff.to_delete)

    @pytest.mark.asyncio
    async def test_inserts_rows_and_points_with_payload(self, synchronizer, repository, rag_client, session_factory, create_document):
        document_id = create_document()

        inserted = await self._apply(synchronizer, repository, document_id, ["first", "second"])

        rows = _chunk_rows(session_factory, document_id)
        assert [row_id for row_id, _ in rows] == inserted
        assert sorted(rag_client.points) == inserted
        point = rag_client.points[inserted[0]]
        assert point.payload.model_dump() == {
            "user_id": OWNER_ID,
            "project_id": repository.fetch_document(document_id).project_id,
            "document_id": document_id,
            "chunk_id": inserted[0],
        }
        assert _status(session_factory, document_id) == "completed"

    @pytest.mark.asyncio
    async def test_deletes_stale_points_before_upsert(self, synchronizer, repository, rag_client, session_factory, create_document):
        document_id = create_document()
        first_ids = await self._apply(synchronizer, repository, document_id, ["keep", "old"])
        rag_client.calls.clear()

        new_ids = await self._apply(synchronizer, repository, document_id, ["keep", "new"])

        assert rag_client.point_calls() == [("delete", [first_ids[1]]), ("upsert", new_ids)]
        assert [content for _, content in _chunk_rows(session_factory, document_id)] == ["keep", "new"]
        assert sorted(rag_client.points) == sorted([first_ids[0]] + new_ids)

    @pytest.mark.asyncio
    async def test_upsert_failure_rolls_back_rows(self, synchronizer, repository, rag_client, session_factory, create_document):
        document_id = create_document()
        await self._apply(synchronizer, repository, document_id, ["keep", "old"])
        rows_before = _chunk_rows(session_factory, document_id)
        rag_client.fail_upsert = True

        with pytest.raises(VectorStoreError) as exc_info:
            await self._apply(synchronizer, repository, document_id, ["keep", "new"])

        assert exc_info.value.document_id == document_id
        # row delete and insert were rolled back together
        assert _chunk_rows(session_factory, document_id) == rows_before

    @pytest.mark.asyncio
    async def test_delete_failure_touches_no_rows(self, synchronizer, repository, rag_client, session_factory, create_document):
        document_id = create_document()
        await self._apply(synchronizer, repository, document_id, ["a", "b"])
        rows_before = _chunk_rows(session_factory, document_id)
        rag_client.fail_delete = True
        rag_client.calls.clear()

        with pytest.raises(VectorStoreError):
            await self._apply(synchronizer, repository, document_id, ["a", "c"])

        assert _chunk_rows(session_factory, document_id) == rows_before
        assert [name for name, _ in rag_client.point_calls()] == ["delete"]

    @pytest.mark.asyncio
    async def test_vector_count_mismatch(self, synchronizer, repository, create_document):
        document_id = create_document()
        document = repository.fetch_document(document_id)

        with pytest.raises(ValueError):
            await synchronizer.do_sync(document, [ChunkCandidate.from_text(index=0, text="x")], [], [])
