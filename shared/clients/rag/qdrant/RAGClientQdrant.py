from typing import Any

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollPage
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    """Qdrant over its REST API.

    Settings: RAG_QDRANT_BASE_URL (required), RAG_QDRANT_API_KEY and
    RAG_QDRANT_COLLECTION (default "carvectors").
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._collection_path = f"/collections/{self.get_collection_name()}"

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self.settings["COLLECTION"]

    ################ CONFIG ##################
    def _get_settings_schema(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL"),
            EnvConfig(env_key="API_KEY", default=""),
            EnvConfig(env_key="COLLECTION", default="carvectors"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        api_key = self.settings["API_KEY"]
        return {"api-key": api_key} if api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self.settings["BASE_URL"]

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return self._collection_path

    def _get_endpoint_collection_exists(self) -> str:
        return f"{self._collection_path}/exists"

    def _get_endpoint_payload_index(self) -> str:
        return f"{self._collection_path}/index"

    def _get_endpoint_points(self) -> str:
        return f"{self._collection_path}/points"

    def _get_endpoint_set_payload(self) -> str:
        return f"{self._collection_path}/points/payload"

    def _get_endpoint_delete_points(self) -> str:
        return f"{self._collection_path}/points/delete"

    def _get_endpoint_search(self) -> str:
        return f"{self._collection_path}/points/search"

    def _get_endpoint_scroll(self) -> str:
        return f"{self._collection_path}/points/scroll"

    def _get_endpoint_count(self) -> str:
        return f"{self._collection_path}/points/count"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def build_filter(self, must: dict[str, Any], gte: dict[str, int] | None = None) -> dict:
        conditions: list[dict] = [{"key": key, "match": {"value": value}} for key, value in must.items()]
        conditions.extend({"key": key, "range": {"gte": bound}} for key, bound in (gte or {}).items())
        return {"must": conditions}

    def get_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_set_payload_payload(self, payload: dict, filter: dict, key: str | None = None) -> dict:
        body: dict = {"payload": payload, "filter": filter}
        if key:
            # qdrant merges into the nested object instead of replacing it
            body["key"] = key
        return body

    def get_search_payload(self, vector: list[float], limit: int, filter: dict | None = None) -> dict:
        body: dict = {"vector": vector, "limit": limit, "with_payload": True}
        if filter:
            body["filter"] = filter
        return body

    def get_scroll_payload(self, filter: dict | None, with_payload: bool | list, limit: int, offset: str | int | None = None) -> dict:
        body: dict = {"limit": limit, "with_payload": with_payload, "with_vector": False}
        if filter:
            body["filter"] = filter
        if offset is not None:
            body["offset"] = offset
        return body

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_exists(self, raw_response: dict) -> bool:
        return bool((raw_response.get("result") or {}).get("exists"))

    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        return [
            {"id": hit.get("id"), "score": hit.get("score", 0.0), "payload": hit.get("payload") or {}}
            for hit in raw_response.get("result") or []
        ]

    def extract_scroll_page(self, raw_response: dict) -> ScrollPage:
        result = raw_response.get("result") or {}
        return ScrollPage(points=result.get("points") or [], next_page_offset=result.get("next_page_offset"))

    def extract_count(self, raw_response: dict) -> int:
        return int((raw_response.get("result") or {}).get("count", 0))
