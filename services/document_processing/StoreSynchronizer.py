"""Applies a chunk diff to the vector index and the relational store.

Order of operations:
  1. delete stale points from the vector index (acknowledged)
  2. open a relational transaction
  3. delete stale chunk rows
  4. insert new chunk rows and flush for their generated ids
  5. build one point per new row, keyed by the row id
  6. upsert the points (acknowledged), rolling back on failure
  7. commit
  8. mark the document completed

This is not a two-phase commit. The upsert in step 6 lands before the
commit in step 7, so a crash in between leaves points without rows. A rerun
of the whole processing flow recovers: the diff still sees the old rows,
re-detects the same chunks to embed and upserts them again.

The transaction stays open while the upsert is awaited. Callers hold
DocumentRepository.store_guard() around do_sync so that, on SQLite, no other
session commits or rolls back on the same database meanwhile.
"""

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import ChunkPayload, VectorPoint
from shared.db.DocumentRepository import DocumentRepository
from shared.db.models import Chunk
from shared.exceptions.errors import RelationalStoreError, VectorStoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkCandidate, DocumentSnapshot, DocumentStatus, StoredChunk


class StoreSynchronizer:
    """Brings both stores to the post-diff state of one document."""

    def __init__(
        self,
        helper_config: HelperConfig,
        repository: DocumentRepository,
        rag_client: RAGClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._rag_client = rag_client

    async def do_sync(
        self,
        document: DocumentSnapshot,
        to_embed: list[ChunkCandidate],
        vectors: list[list[float]],
        to_delete: list[StoredChunk],
    ) -> list[int]:
        """Apply the diff and mark the document completed.

        Args:
            document (DocumentSnapshot): The document with its owner/project attribution.
            to_embed (list[ChunkCandidate]): New chunks, in document order.
            vectors (list[list[float]]): vectors[i] belongs to to_embed[i].
            to_delete (list[StoredChunk]): Prior rows that are no longer present.

        Returns:
            list[int]: Ids of the inserted chunk rows.

        Raises:
            VectorStoreError: If deleting or upserting points fails.
            RelationalStoreError: If a row operation or the commit fails.
        """
        if len(to_embed) != len(vectors):
            raise ValueError(f"Got {len(vectors)} vectors for {len(to_embed)} chunks.")

        delete_ids = [chunk.id for chunk in to_delete]

        # 1. stale points first, rows still reference them if this fails
        if delete_ids:
            try:
                await self._rag_client.do_delete_points(delete_ids, wait=True)
            except VectorStoreError as exc:
                exc.document_id = document.id
                raise
            self.logging.info("document_id=%s deleted %d old points from the vector index", document.id, len(delete_ids))

        # 2.-7. relational transaction around the upsert
        inserted_ids = await self._sync_rows_and_points(document, to_embed, vectors, delete_ids)

        # 8.
        self._repository.set_status(document.id, DocumentStatus.COMPLETED)
        return inserted_ids

    async def _sync_rows_and_points(
        self,
        document: DocumentSnapshot,
        to_embed: list[ChunkCandidate],
        vectors: list[list[float]],
        delete_ids: list[int],
    ) -> list[int]:
        session = self._repository.get_session_factory()()
        try:
            try:
                if delete_ids:
                    session.execute(delete(Chunk).where(Chunk.id.in_(delete_ids)))
                    self.logging.info("document_id=%s deleted %d old chunk rows", document.id, len(delete_ids))

                rows: list[Chunk] = []
                for candidate in to_embed:
                    row = Chunk(
                        document_id=document.id,
                        index=candidate.index,
                        content=candidate.content,
                        content_hash=candidate.content_hash,
                    )
                    session.add(row)
                    rows.append(row)
                # generated ids are needed as point ids
                session.flush()
            except SQLAlchemyError as exc:
                raise RelationalStoreError(f"Failed to write chunk rows: {exc}", document_id=document.id) from exc

            points = [
                VectorPoint(
                    id=row.id,
                    vector=vector,
                    payload=ChunkPayload(
                        user_id=document.owner_id,
                        project_id=document.project_id,
                        document_id=document.id,
                        chunk_id=row.id,
                    ),
                )
                for row, vector in zip(rows, vectors)
            ]

            if points:
                try:
                    await self._rag_client.do_upsert_points(points, wait=True)
                except VectorStoreError as exc:
                    exc.document_id = document.id
                    raise
                self.logging.info("document_id=%s upserted %d new points to the vector index", document.id, len(points))

            try:
                session.commit()
            except SQLAlchemyError as exc:
                raise RelationalStoreError(f"Failed to commit chunk rows: {exc}", document_id=document.id) from exc
            return [row.id for row in rows]
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
