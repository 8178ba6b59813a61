from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import PayloadIndex
from shared.exceptions.errors import CollectionNotFoundError
from shared.helper.HelperConfig import HelperConfig

DEFAULT_VECTOR_SIZE = 768
DEFAULT_DISTANCE = "Cosine"

# one index per payload field written by the synchronizer
PAYLOAD_INDEXES: list[PayloadIndex] = [
    PayloadIndex(field_name="user_id", field_type="keyword"),
    PayloadIndex(field_name="project_id", field_type="integer"),
    PayloadIndex(field_name="document_id", field_type="integer"),
    PayloadIndex(field_name="chunk_id", field_type="integer"),
]


class CollectionManager:
    """Makes sure the vector index collection and its payload indexes exist."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        vector_size: int | None = None,
        distance: str | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self.vector_size = vector_size if vector_size is not None else helper_config.get_int_val("RAG_VECTOR_SIZE", default=DEFAULT_VECTOR_SIZE, minimum=1)
        self.distance = distance if distance is not None else helper_config.get_string_val("EMBED_DISTANCE", default=DEFAULT_DISTANCE)

    async def do_ensure_collection(self) -> bool:
        """Create the collection with its payload indexes if it does not exist yet.

        Safe to call repeatedly. If another caller creates the collection
        concurrently, the "already exists" answer is accepted and the payload
        indexes are still requested (the store treats them idempotently).

        Returns:
            bool: True if the collection was missing and has been set up.

        Raises:
            VectorStoreError: If fetching the collection fails for a reason other
                than "not found", or if creating the collection or an index fails.
        """
        collection = self._rag_client.get_collection_name()
        try:
            await self._rag_client.do_get_collection()
            self.logging.info("Collection '%s' already exists.", collection)
            return False
        except CollectionNotFoundError:
            self.logging.info("Collection '%s' not found, creating it now...", collection)

        created = await self._rag_client.do_create_collection(vector_size=self.vector_size, distance=self.distance)
        if created:
            self.logging.info(
                "Collection '%s' created (size=%d, distance=%s), creating payload indexes...",
                collection, self.vector_size, self.distance,
            )
        else:
            self.logging.warning("Collection '%s' was created concurrently by another caller.", collection)

        for payload_index in PAYLOAD_INDEXES:
            await self._rag_client.do_create_payload_index(payload_index.field_name, payload_index.field_type, wait=True)
            self.logging.debug("Payload index '%s' (%s) ready.", payload_index.field_name, payload_index.field_type)

        self.logging.info("All payload indexes for collection '%s' created.", collection)
        return True
