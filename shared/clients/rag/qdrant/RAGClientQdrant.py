import httpx

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.models.config import EnvConfig

DEFAULT_COLLECTION = "document-chunks"


class RAGClientQdrant(RAGClientInterface):
    """Qdrant REST backend. Settings: RAG_QDRANT_BASE_URL, RAG_QDRANT_API_KEY, RAG_QDRANT_COLLECTION."""

    def _get_engine_name(self) -> str:
        return "Qdrant"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=DEFAULT_COLLECTION),
        ]

    def get_collection_name(self) -> str:
        return self.get_setting("COLLECTION")

    ##########################################
    ############### TRANSPORT ################
    ##########################################

    def _get_auth_header(self) -> dict:
        api_key = self.get_setting("API_KEY")
        return {"api-key": api_key} if api_key else {}

    def _get_base_url(self) -> str:
        return self.get_setting("BASE_URL")

    def is_not_found_response(self, response: httpx.Response) -> bool:
        return response.status_code == 404

    def is_already_exists_response(self, response: httpx.Response) -> bool:
        # 409 on recent versions, 400 with a message on older ones
        if response.status_code == 409:
            return True
        return response.status_code == 400 and "already exists" in response.text

    ##########################################
    ############### ENDPOINTS ################
    ##########################################

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self.get_collection_name()}"

    def _get_endpoint_payload_index(self) -> str:
        return f"{self._get_endpoint_collection()}/index"

    def _get_endpoint_points(self) -> str:
        return f"{self._get_endpoint_collection()}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"{self._get_endpoint_points()}/delete"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_payload_index_payload(self, field_name: str, field_type: str) -> dict:
        return {"field_name": field_name, "field_schema": field_type}

    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        return {"points": [point.model_dump() for point in points]}

    def get_delete_payload(self, point_ids: list[int]) -> dict:
        return {"points": list(point_ids)}
