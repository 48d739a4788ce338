from typing import Any

from shared.helper.HelperConfig import HelperConfig
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.Search import CollectionInfo, SearchHit
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self, api_key: str | None = None) -> dict:
        key = api_key or self._api_key
        if key:
            return {"api-key": key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collections(self) -> str:
        return "/collections"

    def _get_endpoint_collection(self, collection: str) -> str:
        return f"/collections/{collection}"

    def _get_endpoint_points(self, collection: str) -> str:
        return f"/collections/{collection}/points"

    def _get_endpoint_search(self, collection: str) -> str:
        return f"/collections/{collection}/points/search"

    def _get_endpoint_delete_points(self, collection: str) -> str:
        return f"/collections/{collection}/points/delete"

    def _get_endpoint_count(self, collection: str) -> str:
        return f"/collections/{collection}/points/count"

    def _get_endpoint_scroll(self, collection: str) -> str:
        return f"/collections/{collection}/points/scroll"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def build_match_filter(self, conditions: dict[str, Any]) -> dict:
        return {"must": [{"key": key, "match": {"value": value}} for key, value in conditions.items()]}

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_search_payload(self, vector: list[float], limit: int, score_threshold: float | None) -> dict:
        payload: dict = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }
        if score_threshold is not None:
            payload["score_threshold"] = score_threshold
        return payload

    def get_count_payload(self, filter: dict | None) -> dict:
        payload: dict = {"exact": True}
        if filter:
            payload["filter"] = filter
        return payload

    def get_delete_payload(self, filter: dict) -> dict:
        return {"filter": filter}

    def get_scroll_payload(self, filter: dict | None, limit: int, offset: str | int | None = None) -> dict:
        payload: dict = {"limit": limit, "with_payload": True, "with_vector": False}
        if filter:
            payload["filter"] = filter
        if offset is not None:
            payload["offset"] = offset
        return payload

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        return [SearchHit.model_validate(hit) for hit in raw_response.get("result") or []]

    def extract_collection_info(self, collection: str, raw_response: dict) -> CollectionInfo:
        result = raw_response.get("result") or {}
        vectors = result.get("config", {}).get("params", {}).get("vectors", {})
        # named vectors are a dict of configs without a top level "size"
        vector_size = vectors.get("size") if isinstance(vectors, dict) else None
        return CollectionInfo(
            name=collection,
            point_count=result.get("points_count") or 0,
            vector_size=vector_size,
            distance=vectors.get("distance") if isinstance(vectors, dict) else None,
            status=result.get("status"),
        )

    def extract_collection_names(self, raw_response: dict) -> list[str]:
        return [c.get("name") for c in raw_response.get("result", {}).get("collections", []) if c.get("name")]

    def extract_scroll_content(self, raw_response: dict) -> ScrollResult:
        result = raw_response.get("result", {})
        return ScrollResult(
            result=result.get("points", []),
            status=raw_response.get("status", "ok"),
            time=raw_response.get("time", 0),
            next_page_offset=result.get("next_page_offset"),
        )
