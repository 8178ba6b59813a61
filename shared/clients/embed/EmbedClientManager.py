from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """
    Embedding client selected by EMBED_ENGINE (mandatory).
    """

    def _get_client_type(self) -> str:
        return "embed"

    def _get_class_prefix(self) -> str:
        return "EmbedClient"

    def get_client(self) -> EmbedClientInterface:
        return self.client
