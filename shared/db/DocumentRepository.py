"""Relational access for the processing pipeline.

Reads come back as detached pydantic snapshots so no ORM instance outlives
its session. Chunk writes are not here: they belong to the synchronizer's
transaction.
"""

import asyncio
import contextlib

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from shared.db.models import Chunk, Document
from shared.exceptions.errors import DocumentFetchError, DocumentNotFoundError, RelationalStoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentSnapshot, DocumentStatus, StoredChunk


class DocumentRepository:
    """Reads documents with their chunks and writes document status."""

    def __init__(self, helper_config: HelperConfig, session_factory: sessionmaker[Session]) -> None:
        self.logging = helper_config.get_logger()
        self._session_factory = session_factory

        # sqlite has a single writer, and in-memory databases share one connection
        engine = session_factory.kw.get("bind")
        self._store_lock = asyncio.Lock() if engine is not None and engine.dialect.name == "sqlite" else None

    def get_session_factory(self) -> sessionmaker[Session]:
        return self._session_factory

    def store_guard(self) -> contextlib.AbstractAsyncContextManager:
        """Async context manager to hold around relational work of one document.

        The synchronizer keeps its transaction open while it awaits the vector
        upsert. On SQLite that transaction must not interleave with the work of
        another document, so the guard is a lock shared by all callers. Other
        databases isolate sessions themselves and get a no-op guard.
        """
        if self._store_lock is None:
            return contextlib.nullcontext()
        return self._store_lock

    ##########################################
    ################# READ ###################
    ##########################################

    def fetch_document(self, document_id: int) -> DocumentSnapshot:
        """Load a document with its project owner and its prior chunk set.

        Args:
            document_id (int): Relational document id.

        Returns:
            DocumentSnapshot: The detached document.

        Raises:
            DocumentNotFoundError: If no document has this id.
            DocumentFetchError: If the database read fails or the document has no project.
        """
        try:
            with self._session_factory() as session:
                stmt = (
                    select(Document)
                    .where(Document.id == document_id)
                    .options(selectinload(Document.project), selectinload(Document.chunks))
                )
                doc = session.execute(stmt).scalar_one_or_none()
                if doc is None:
                    raise DocumentNotFoundError(f"Document {document_id} not found", document_id=document_id)
                if doc.project is None:
                    raise DocumentFetchError(f"Document {document_id} has no project", document_id=document_id)
                return DocumentSnapshot(
                    id=doc.id,
                    name=doc.name,
                    content=doc.content or "",
                    project_id=doc.project.id,
                    owner_id=str(doc.project.owner_id),
                    chunks=[
                        StoredChunk(id=c.id, index=c.index, content=c.content, content_hash=c.content_hash)
                        for c in doc.chunks
                    ],
                )
        except SQLAlchemyError as exc:
            raise DocumentFetchError(f"Failed to fetch document {document_id}: {exc}", document_id=document_id) from exc

    def list_chunk_ids(self, document_id: int) -> list[int]:
        """Return the ids of all chunk rows of a document.

        Raises:
            DocumentFetchError: If the database read fails.
        """
        try:
            with self._session_factory() as session:
                stmt = select(Chunk.id).where(Chunk.document_id == document_id).order_by(Chunk.id)
                return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise DocumentFetchError(f"Failed to query chunk ids of document {document_id}: {exc}", document_id=document_id) from exc

    ##########################################
    ################ WRITE ###################
    ##########################################

    def set_status(self, document_id: int, status: DocumentStatus) -> None:
        """Update the status of a document in its own transaction.

        Raises:
            DocumentNotFoundError: If no document has this id.
            RelationalStoreError: If the update fails.
        """
        try:
            with self._session_factory() as session:
                result = session.execute(
                    update(Document).where(Document.id == document_id).values(status=status.value)
                )
                if result.rowcount == 0:
                    session.rollback()
                    raise DocumentNotFoundError(f"Document {document_id} not found", document_id=document_id)
                session.commit()
        except SQLAlchemyError as exc:
            raise RelationalStoreError(f"Failed to set status '{status.value}' on document {document_id}: {exc}", document_id=document_id) from exc
        self.logging.debug("document_id=%s status -> %s", document_id, status.value)
