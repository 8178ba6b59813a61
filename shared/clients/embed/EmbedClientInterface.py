from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import EmbeddingError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """
    Embedding model backend. EMBED_MODEL names the model for every request.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL")

    def _get_client_type(self) -> str:
        return "embed"

    def _build_request_error(self, message: str, status_code: int | None = None) -> Exception:
        return EmbeddingError(message)

    ##########################################
    ############### ENDPOINTS ################
    ##########################################

    @abstractmethod
    def _get_endpoint_models(self) -> str:
        """
        Returns the endpoint path listing the installed models. E.g. "/api/tags"
        """
        pass

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests. E.g. "/api/embed"
        """
        pass

    ##########################################
    ################ PAYLOAD #################
    ##########################################

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """
        Returns the request body embedding the given texts with the configured model.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract the vectors of an embedding response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: One vector per input text, in input order.

        Raises:
            EmbeddingError: If the response holds no usable vectors.
        """
        pass

    @abstractmethod
    def extract_model_names(self, response_data: dict) -> list[str]:
        """
        Returns the model names of a model listing response.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_check_model(self) -> bool:
        """Check that the configured model is installed on the backend.

        Returns:
            bool: True if EMBED_MODEL is listed, with or without a ":latest" tag.

        Raises:
            EmbeddingError: If the model list cannot be fetched.
        """
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_models(), raise_on_error=True)
        names = set(self.extract_model_names(response.json()))
        wanted = self.embed_model
        return wanted in names or f"{wanted}:latest" in names or wanted.removesuffix(":latest") in names

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            EmbeddingError: If the request fails or the response holds no valid embeddings.
        """
        texts = [texts] if isinstance(texts, str) else texts
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=self.get_embed_payload(texts))
        if response.status_code != 200:
            self.logging.error("Embedding request failed: status %d, body: %s", response.status_code, response.text[:200])
            raise EmbeddingError("Embedding request failed with status %d." % response.status_code)
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(vectors)}.")
        return vectors

    async def do_embed_text(self, text: str) -> list[float]:
        """Embed one chunk text. This is the embedding function of the worker pool."""
        vectors = await self.do_embed(text)
        return vectors[0]
