"""Document processing service.

Chunks a document, diffs the chunks against the persisted ones by content
hash, embeds only new or changed chunks and applies the diff to the
relational store and the vector index. The document status is the only
externally visible outcome besides the two stores.
"""

import asyncio

from services.document_processing.ChunkDiff import compute_chunk_diff
from services.document_processing.EmbeddingWorkerPool import EmbedFunction, EmbeddingWorkerPool
from services.document_processing.StoreSynchronizer import StoreSynchronizer
from services.document_processing.chunking.ChunkerManager import ChunkerManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.db.DocumentRepository import DocumentRepository
from shared.exceptions.errors import DocumentNotFoundError, DocumentProcessingError, VectorStoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentStatus


class DocumentProcessingService:
    """Entry points for processing a document and deleting its vectors."""

    def __init__(
        self,
        helper_config: HelperConfig,
        repository: DocumentRepository,
        rag_client: RAGClientInterface,
        embed_function: EmbedFunction,
        chunker_manager: ChunkerManager | None = None,
        worker_pool: EmbeddingWorkerPool | None = None,
        synchronizer: StoreSynchronizer | None = None,
        expected_vector_size: int | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._rag_client = rag_client
        self._chunker_manager = chunker_manager or ChunkerManager(helper_config=helper_config)
        self._worker_pool = worker_pool or EmbeddingWorkerPool(
            helper_config=helper_config,
            embed_function=embed_function,
            expected_vector_size=expected_vector_size,
        )
        self._synchronizer = synchronizer or StoreSynchronizer(
            helper_config=helper_config,
            repository=repository,
            rag_client=rag_client,
        )

        # in-flight runs and one lock per document id
        self._pending: set[asyncio.Task] = set()
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: dict[int, int] = {}

    ##########################################
    ############## PROCESSING ################
    ##########################################

    async def do_process_document(self, document_id: int) -> DocumentStatus | None:
        """Process a document from its current content.

        Never raises for stage failures: errors are logged with the document
        id and the document is marked failed. Nothing is retried; a new trigger
        (content update or manual reprocess) is the retry.

        Relational work runs under the repository's store guard. Chunking and
        embedding run outside of it, so different documents still embed
        concurrently when the guard is a lock.

        Args:
            document_id (int): Relational id of the document.

        Returns:
            DocumentStatus | None: The final status, None if the document does not exist.
        """
        self.logging.info("document_id=%s starting processing", document_id)

        try:
            async with self._repository.store_guard():
                self._repository.set_status(document_id, DocumentStatus.PROCESSING)
        except DocumentNotFoundError:
            self.logging.warning("document_id=%s not found, nothing to process", document_id)
            return None
        except DocumentProcessingError as exc:
            self.logging.error("document_id=%s could not be marked processing: %s", document_id, exc)
            return await self._mark_failed(document_id)

        try:
            async with self._repository.store_guard():
                document = self._repository.fetch_document(document_id)

            chunker = self._chunker_manager.get_chunker(document.name)
            new_chunks = chunker.chunk(document.content)
            self.logging.info(
                "document_id=%s chunked with '%s': %d new chunks, %d existing chunks",
                document_id, chunker.get_strategy_name(), len(new_chunks), len(document.chunks),
            )

            diff = compute_chunk_diff(new_chunks, document.chunks)
            self.logging.info("document_id=%s calculated chunk diff: %s", document_id, diff.summary)

            if not diff.has_changes:
                self.logging.info("document_id=%s no changes detected in document content", document_id)
                async with self._repository.store_guard():
                    self._repository.set_status(document_id, DocumentStatus.COMPLETED)
                return DocumentStatus.COMPLETED

            for candidate in diff.to_embed:
                self.logging.debug("document_id=%s chunk %d to embed, headings '%s'", document_id, candidate.index, candidate.metadata.get("headings", ""))

            vectors = await self._worker_pool.do_embed_chunks(diff.to_embed)
            if diff.to_embed:
                self.logging.info("document_id=%s embedded %d new chunks", document_id, len(vectors))

            async with self._repository.store_guard():
                await self._synchronizer.do_sync(document, diff.to_embed, vectors, diff.to_delete)
        except DocumentProcessingError as exc:
            self.logging.error("document_id=%s processing failed (%s): %s", document_id, type(exc).__name__, exc)
            return await self._mark_failed(document_id)
        except Exception as exc:
            self.logging.exception("document_id=%s processing failed unexpectedly: %s", document_id, exc)
            return await self._mark_failed(document_id)

        self.logging.info("document_id=%s processing completed successfully", document_id)
        return DocumentStatus.COMPLETED

    async def _mark_failed(self, document_id: int) -> DocumentStatus:
        try:
            async with self._repository.store_guard():
                self._repository.set_status(document_id, DocumentStatus.FAILED)
        except DocumentProcessingError as exc:
            self.logging.error("document_id=%s could not be marked failed: %s", document_id, exc)
        return DocumentStatus.FAILED

    ##########################################
    ############### SCHEDULING ###############
    ##########################################

    def schedule_process_document(self, document_id: int) -> asyncio.Task:
        """Start processing in the background and return immediately.

        Runs for the same document are serialized; different documents run
        concurrently. Must be called from a running event loop.

        Args:
            document_id (int): Relational id of the document.

        Returns:
            asyncio.Task: Resolves to the final status (see do_process_document).
        """
        task = asyncio.create_task(self._run_serialized(document_id), name=f"process-document-{document_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self.logging.debug("document_id=%s processing scheduled", document_id)
        return task

    async def _run_serialized(self, document_id: int) -> DocumentStatus | None:
        self._lock_users[document_id] = self._lock_users.get(document_id, 0) + 1
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        try:
            async with lock:
                return await self.do_process_document(document_id)
        finally:
            self._lock_users[document_id] -= 1
            if self._lock_users[document_id] == 0:
                del self._lock_users[document_id]
                del self._locks[document_id]

    def get_pending_count(self) -> int:
        return len(self._pending)

    async def wait_for_pending(self) -> list[DocumentStatus | None]:
        """Wait until every scheduled run has finished.

        Returns:
            list[DocumentStatus | None]: The final statuses, in no particular order.
        """
        if not self._pending:
            return []
        return list(await asyncio.gather(*list(self._pending)))

    ##########################################
    ############### DELETION #################
    ##########################################

    async def do_delete_document_vectors(self, document_id: int) -> int:
        """Delete every vector point of the document's current chunk set.

        Args:
            document_id (int): Relational id of the document.

        Returns:
            int: Number of points deleted. Zero chunks is a success and sends no request.

        Raises:
            DocumentFetchError: If the chunk ids cannot be read.
            VectorStoreError: If the vector index delete fails.
        """
        self.logging.info("document_id=%s deleting all vectors from the vector index", document_id)
        async with self._repository.store_guard():
            chunk_ids = self._repository.list_chunk_ids(document_id)
        if not chunk_ids:
            self.logging.warning("document_id=%s has no chunks, nothing to delete from the vector index", document_id)
            return 0

        try:
            await self._rag_client.do_delete_points(chunk_ids, wait=True)
        except VectorStoreError as exc:
            exc.document_id = document_id
            self.logging.error("document_id=%s failed to delete vectors: %s", document_id, exc)
            raise

        self.logging.info("document_id=%s deleted %d vectors from the vector index", document_id, len(chunk_ids))
        return len(chunk_ids)
