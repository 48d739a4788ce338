from abc import abstractmethod
from typing import Any
import json

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.Search import CollectionInfo, SearchHit
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import StoreConflictError


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_conflict(self, response: httpx.Response) -> bool:
        """Whether the backend rejected a write because a point id is already taken."""
        if response.status_code == 409:
            return True
        if response.is_success:
            return False
        text = response.text.lower()
        return "conflict" in text or "already exists" in text

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collections(self) -> str:
        """Returns the endpoint path listing all collections (e.g. "/collections")."""
        pass

    @abstractmethod
    def _get_endpoint_collection(self, collection: str) -> str:
        """Returns the endpoint path to create, describe or delete one collection."""
        pass

    @abstractmethod
    def _get_endpoint_points(self, collection: str) -> str:
        """Returns the endpoint path for point upserts."""
        pass

    @abstractmethod
    def _get_endpoint_search(self, collection: str) -> str:
        """Returns the endpoint path for similarity searches."""
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self, collection: str) -> str:
        """Returns the endpoint path for filter-based deletes."""
        pass

    @abstractmethod
    def _get_endpoint_count(self, collection: str) -> str:
        """Returns the endpoint path for counting points matching a filter."""
        pass

    @abstractmethod
    def _get_endpoint_scroll(self, collection: str) -> str:
        """Returns the endpoint path for scroll requests."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def build_match_filter(self, conditions: dict[str, Any]) -> dict:
        """
        Builds a backend filter requiring every payload key to equal the given value.

        Args:
            conditions (dict[str, Any]): Payload key → required value.

        Returns:
            dict: The backend-specific filter.
        """
        pass

    @abstractmethod
    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], limit: int, score_threshold: float | None) -> dict:
        pass

    @abstractmethod
    def get_count_payload(self, filter: dict | None) -> dict:
        pass

    @abstractmethod
    def get_delete_payload(self, filter: dict) -> dict:
        pass

    @abstractmethod
    def get_scroll_payload(self, filter: dict | None, limit: int, offset: str | int | None = None) -> dict:
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        pass

    @abstractmethod
    def extract_collection_info(self, collection: str, raw_response: dict) -> CollectionInfo:
        pass

    @abstractmethod
    def extract_collection_names(self, raw_response: dict) -> list[str]:
        pass

    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> ScrollResult:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_get_collection_info(self, collection: str) -> CollectionInfo | None:
        """Describe a collection.

        Returns:
            CollectionInfo | None: None if the collection does not exist.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collection(collection))
        if resp.status_code == 404:
            return None
        self.raise_for_provider_status(resp)
        return self.extract_collection_info(collection, resp.json())

    async def do_list_collections(self) -> list[str]:
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_collections(), raise_on_error=True)
        return self.extract_collection_names(resp.json())

    async def do_create_collection(self, collection: str, vector_size: int, distance: str | None = None) -> httpx.Response:
        """Create a collection with a fixed vector size.

        Args:
            collection (str): The collection name.
            vector_size (int): The size of the vectors in the collection.
            distance (str | None): The distance metric, RAG_DISTANCE if None.
        """
        return await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_size, distance or self.distance),
            endpoint=self._get_endpoint_collection(collection),
            raise_on_error=True,
        )

    async def do_delete_collection(self, collection: str) -> bool:
        """Drop a collection. Returns False if it did not exist."""
        resp = await self.do_request(method="DELETE", endpoint=self._get_endpoint_collection(collection))
        if resp.status_code == 404:
            return False
        self.raise_for_provider_status(resp)
        return True

    async def do_upsert_points(self, collection: str, points: list[dict[str, Any]]) -> httpx.Response:
        """Write points into a collection.

        Args:
            collection (str): The collection name.
            points (list[dict[str, Any]]): Points with "id", "vector" and "payload".

        Raises:
            StoreConflictError: If the backend reports an id conflict.
            KnowledgeBaseError: For any other non-2xx status.
        """
        resp = await self.do_request(
            method="PUT",
            content=json.dumps({"points": points}),
            params={"wait": "true"},
            endpoint=self._get_endpoint_points(collection),
            additional_headers={"Content-Type": "application/json"},
        )
        if self.is_conflict(resp):
            raise StoreConflictError(
                f"Upsert into collection '{collection}' was rejected as a conflict: {resp.text[:200]}"
            )
        self.raise_for_provider_status(resp)
        return resp

    async def do_search(self, collection: str, vector: list[float], limit: int, score_threshold: float | None = None) -> list[SearchHit]:
        """Return the points most similar to the vector, best first."""
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector, limit, score_threshold),
            endpoint=self._get_endpoint_search(collection),
            raise_on_error=True,
        )
        return self.extract_search_hits(resp.json())

    async def do_delete_points_by_filter(self, collection: str, filter: dict) -> None:
        """Delete all points matching the filter."""
        await self.do_request(
            method="POST",
            json=self.get_delete_payload(filter),
            params={"wait": "true"},
            endpoint=self._get_endpoint_delete_points(collection),
            raise_on_error=True,
        )

    async def do_count(self, collection: str, filter: dict | None = None) -> int:
        """Count the points matching the filter, or all points if None."""
        resp = await self.do_request(
            method="POST",
            json=self.get_count_payload(filter),
            endpoint=self._get_endpoint_count(collection),
            raise_on_error=True,
        )
        return int(resp.json().get("result", {}).get("count", 0))

    async def do_scroll(self, collection: str, filter: dict | None = None, limit: int = 10, offset: str | int | None = None) -> ScrollResult:
        """Read one page of points without a query vector."""
        resp = await self.do_request(
            method="POST",
            json=self.get_scroll_payload(filter, limit, offset),
            endpoint=self._get_endpoint_scroll(collection),
            raise_on_error=True,
        )
        return self.extract_scroll_content(resp.json())
