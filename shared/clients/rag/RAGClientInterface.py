from abc import abstractmethod
import json

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions.errors import CollectionNotFoundError, VectorStoreError


class RAGClientInterface(ClientInterface):
    """
    Vector index backend. All point operations are scoped to one collection.
    """

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the name of the collection all point operations are scoped to.
        """
        pass

    ################ ERRORS ##################
    def _build_request_error(self, message: str, status_code: int | None = None) -> Exception:
        return VectorStoreError(message, status_code=status_code)

    @abstractmethod
    def is_not_found_response(self, response: httpx.Response) -> bool:
        """
        Returns True if the response signals that the collection does not exist.
        """
        pass

    @abstractmethod
    def is_already_exists_response(self, response: httpx.Response) -> bool:
        """
        Returns True if a create collection response signals that the collection
        was already created (e.g. by a concurrent caller).
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """
        Returns the endpoint path for collection info and collection creation.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col")
        """
        pass

    @abstractmethod
    def _get_endpoint_payload_index(self) -> str:
        """
        Returns the endpoint path for payload field index creation.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/index")
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/delete")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        """
        Builds the backend-specific request payload for collection creation.

        Args:
            vector_size (int): Dimensionality of the stored vectors.
            distance (str): Distance metric name, e.g. "Cosine".
        """
        pass

    @abstractmethod
    def get_payload_index_payload(self, field_name: str, field_type: str) -> dict:
        """
        Builds the backend-specific request payload for a payload field index.
        """
        pass

    @abstractmethod
    def get_upsert_payload(self, points: list[VectorPoint]) -> dict:
        """
        Builds the backend-specific request payload for a points upsert.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, point_ids: list[int]) -> dict:
        """
        Builds the backend-specific request payload for an id-based delete.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_get_collection(self) -> dict:
        """Fetch the collection metadata.

        Returns:
            dict: The raw collection info returned by the backend.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            VectorStoreError: For any other failure.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection())
        if self.is_not_found_response(resp):
            raise CollectionNotFoundError(
                f"Collection '{self.get_collection_name()}' not found",
                status_code=resp.status_code,
            )
        if resp.status_code >= 300:
            raise VectorStoreError(
                f"Could not get collection info for '{self.get_collection_name()}': status {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.json().get("result", {})

    async def do_create_collection(self, vector_size: int = 768, distance: str = "Cosine") -> bool:
        """Create the collection.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Returns:
            bool: True if this call created the collection, False if it already existed.

        Raises:
            VectorStoreError: If the creation fails for any other reason.
        """
        resp = await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_size, distance),
            endpoint=self._get_endpoint_collection(),
        )
        if self.is_already_exists_response(resp):
            return False
        if resp.status_code >= 300:
            raise VectorStoreError(
                f"Could not create collection '{self.get_collection_name()}': status {resp.status_code}",
                status_code=resp.status_code,
            )
        return True

    async def do_create_payload_index(self, field_name: str, field_type: str, wait: bool = True) -> None:
        """Create a payload index on one field of the collection.

        Args:
            field_name (str): Payload key to index.
            field_type (str): Index schema type (e.g. "keyword", "integer").
            wait (bool): Wait until the backend has applied the change.
        """
        await self.do_request(
            method="PUT",
            json=self.get_payload_index_payload(field_name, field_type),
            params={"wait": str(wait).lower()},
            endpoint=self._get_endpoint_payload_index(),
            raise_on_error=True,
        )

    async def do_upsert_points(self, points: list[VectorPoint], wait: bool = True) -> None:
        """Upsert points into the collection.
        Inserts new points or replaces existing ones with the same id, so a
        repeated upsert of the same points is harmless.

        Args:
            points (list[VectorPoint]): The points to upsert.
            wait (bool): Wait until the backend acknowledged the write.
        """
        await self.do_request(
            method="PUT",
            content=json.dumps(self.get_upsert_payload(points)),
            params={"wait": str(wait).lower()},
            endpoint=self._get_endpoint_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_delete_points(self, point_ids: list[int], wait: bool = True) -> None:
        """Delete points by id from the collection.

        Args:
            point_ids (list[int]): Ids of the points to delete.
            wait (bool): Wait until the backend acknowledged the delete.
        """
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(point_ids)),
            params={"wait": str(wait).lower()},
            endpoint=self._get_endpoint_delete_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
