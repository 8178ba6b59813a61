from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions.errors import EmbeddingError
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Ollama backend. Settings: EMBED_OLLAMA_BASE_URL, EMBED_OLLAMA_API_KEY (for proxies)."""

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ##########################################
    ############### TRANSPORT ################
    ##########################################

    def _get_auth_header(self) -> dict:
        api_key = self.get_setting("API_KEY")
        return {"Authorization": f"Bearer {api_key}"} if api_key else {}

    def _get_base_url(self) -> str:
        return self.get_setting("BASE_URL")

    ##########################################
    ############### ENDPOINTS ################
    ##########################################

    def _get_endpoint_healthcheck(self) -> str:
        # the root answers "Ollama is running"
        return ""

    def _get_endpoint_models(self) -> str:
        return "/api/tags"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ##########################################
    ################ PAYLOAD #################
    ##########################################

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        # {"model": "...", "embeddings": [[...], ...]} in input order
        embeddings = response_data.get("embeddings")
        if not embeddings or not all(embeddings):
            raise EmbeddingError(f"Ollama answered without usable embeddings (keys: {sorted(response_data)}).")
        return embeddings

    def extract_model_names(self, response_data: dict) -> list[str]:
        # {"models": [{"name": "nomic-embed-text:latest", ...}, ...]}
        return [model.get("name", "") for model in response_data.get("models", [])]
