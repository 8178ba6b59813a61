"""Document processing runner entry point.

Processes documents that already exist in the relational store, or removes
their vectors from the vector index. The surrounding system normally calls
DocumentProcessingService.schedule_process_document() after a document was
created or its content changed; this runner is the manual / operator path
(e.g. reprocessing a failed document).

Usage:
    python -m services.document_processing.document_processing_runner --document-id 12 13
    python -m services.document_processing.document_processing_runner --document-id 12 --delete-vectors
"""

import argparse
import asyncio
import sys

from services.document_processing.CollectionManager import CollectionManager
from services.document_processing.DocumentProcessingService import DocumentProcessingService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.db.DocumentRepository import DocumentRepository
from shared.db.database import close_db, init_db
from shared.exceptions.errors import DocumentProcessingError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.document import DocumentStatus


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chunk, embed and sync documents into the vector index.")
    parser.add_argument("--document-id", type=int, nargs="+", required=True, help="Relational ids of the documents.")
    parser.add_argument("--delete-vectors", action="store_true", help="Delete the documents' vectors instead of processing them.")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run the requested operation and return the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()

    try:
        # both backends are required, abort if one of them does not answer
        for client in (embed_client, rag_client):
            try:
                await client.boot()
                await client.do_healthcheck()
            except Exception as e:
                logger.error(f"Error booting {client.get_client_type()} client {client.get_engine_name()}: {e}. Aborting.")
                return 1

        try:
            model_available = await embed_client.do_check_model()
        except DocumentProcessingError as e:
            logger.error(f"Error listing models of {embed_client.get_engine_name()}: {e}. Aborting.")
            return 1
        if not model_available:
            logger.error(f"Embedding model '{embed_client.embed_model}' is not available on {embed_client.get_engine_name()}. Aborting.")
            return 1

        session_factory = init_db(config.get_string_val("DATABASE_URL"))
        repository = DocumentRepository(helper_config=config, session_factory=session_factory)

        collection_manager = CollectionManager(helper_config=config, rag_client=rag_client)
        await collection_manager.do_ensure_collection()

        service = DocumentProcessingService(
            helper_config=config,
            repository=repository,
            rag_client=rag_client,
            embed_function=embed_client.do_embed_text,
            expected_vector_size=collection_manager.vector_size,
        )

        if args.delete_vectors:
            exit_code = 0
            for document_id in args.document_id:
                try:
                    await service.do_delete_document_vectors(document_id)
                except DocumentProcessingError as e:
                    logger.error(f"Deleting vectors of document {document_id} failed: {e}")
                    exit_code = 1
            return exit_code

        for document_id in args.document_id:
            service.schedule_process_document(document_id)
        statuses = await service.wait_for_pending()

        failed = sum(1 for status in statuses if status != DocumentStatus.COMPLETED)
        logger.info("Processing finished: %d completed, %d not completed.", len(statuses) - failed, failed, color="cyan")
        return 0 if failed == 0 else 1
    finally:
        await embed_client.close()
        await rag_client.close()
        close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
