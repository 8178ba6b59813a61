from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Vector index client selected by RAG_ENGINE (default "qdrant").
    """

    def _get_client_type(self) -> str:
        return "rag"

    def _get_class_prefix(self) -> str:
        return "RAGClient"

    def _get_default_engine(self) -> str | None:
        return "qdrant"

    def get_client(self) -> RAGClientInterface:
        return self.client
