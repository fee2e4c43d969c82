import json
from abc import abstractmethod
from typing import Any

import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.rag.models.Scroll import ScrollPage
from shared.helper.HelperConfig import HelperConfig

SCROLL_PAGE_SIZE = 1000


class RAGClientInterface(HttpClientInterface):
    """Vector index backend: one named collection of points with payloads.

    Writes are sent with wait=true so that a returned call is visible to the
    next search. Filters are built with build_filter() and passed through
    opaquely, so callers never see the backend's filter syntax.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_collection(self) -> str:
        """Path of the collection itself (create)."""
        pass

    @abstractmethod
    def _get_endpoint_collection_exists(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_payload_index(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """Path for upserting points."""
        pass

    @abstractmethod
    def _get_endpoint_set_payload(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_count(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def build_filter(self, must: dict[str, Any], gte: dict[str, int] | None = None) -> dict:
        """Backend filter matching every condition.

        Args:
            must (dict[str, Any]): Payload key -> exact value.
            gte (dict[str, int] | None): Payload key -> inclusive lower bound.
        """
        pass

    @abstractmethod
    def get_collection_payload(self, vector_size: int, distance: str) -> dict:
        pass

    @abstractmethod
    def get_set_payload_payload(self, payload: dict, filter: dict, key: str | None = None) -> dict:
        """Body of a filter-selected partial payload update.

        Args:
            payload (dict): Keys to overwrite; other keys are kept.
            filter (dict): Selects the points.
            key (str | None): Nested payload object to write into instead of the root.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], limit: int, filter: dict | None = None) -> dict:
        pass

    @abstractmethod
    def get_scroll_payload(self, filter: dict | None, with_payload: bool | list, limit: int, offset: str | int | None = None) -> dict:
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_exists(self, raw_response: dict) -> bool:
        pass

    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[dict]:
        """Hits best first, each as {"id", "score", "payload"}."""
        pass

    @abstractmethod
    def extract_scroll_page(self, raw_response: dict) -> ScrollPage:
        pass

    @abstractmethod
    def extract_count(self, raw_response: dict) -> int:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _post_json(self, endpoint: str, body: dict, method: str = "POST", wait: bool = False) -> httpx.Response:
        return await self.do_request(
            method=method,
            content=json.dumps(body),
            endpoint=endpoint,
            params={"wait": "true"} if wait else None,
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_existence_check(self) -> bool:
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_collection_exists())
        return self.extract_exists(response.json())

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        await self._post_json(self._get_endpoint_collection(), self.get_collection_payload(vector_size, distance), method="PUT")

    async def do_create_payload_index(self, field_name: str, field_schema: str = "keyword") -> None:
        """Index a payload field so that filters on it do not scan the collection."""
        await self._post_json(
            self._get_endpoint_payload_index(),
            {"field_name": field_name, "field_schema": field_schema},
            method="PUT",
            wait=True,
        )

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Insert points, replacing any existing point with the same id."""
        await self._post_json(self._get_endpoint_points(), {"points": points}, method="PUT", wait=True)

    async def do_set_payload_by_filter(self, payload: dict, filter: dict, key: str | None = None) -> None:
        """Overwrite payload keys on every matching point. Matching nothing is not an error."""
        await self._post_json(self._get_endpoint_set_payload(), self.get_set_payload_payload(payload, filter, key), wait=True)

    async def do_delete_points_by_filter(self, filter: dict) -> None:
        """Delete every matching point. Matching nothing is not an error."""
        await self._post_json(self._get_endpoint_delete_points(), {"filter": filter}, wait=True)

    async def do_search(self, vector: list[float], limit: int, filter: dict | None = None) -> list[dict]:
        response = await self._post_json(self._get_endpoint_search(), self.get_search_payload(vector, limit, filter))
        return self.extract_search_hits(response.json())

    async def do_count(self, filter: dict | None = None) -> int:
        body: dict = {"exact": True}
        if filter:
            body["filter"] = filter
        response = await self._post_json(self._get_endpoint_count(), body)
        return self.extract_count(response.json())

    async def do_scroll(self, filter: dict | None, with_payload: bool | list, limit: int = SCROLL_PAGE_SIZE, offset: str | int | None = None) -> ScrollPage:
        """Fetch one page of points. Use do_scroll_all() to walk every page."""
        response = await self._post_json(self._get_endpoint_scroll(), self.get_scroll_payload(filter, with_payload, limit, offset))
        return self.extract_scroll_page(response.json())

    async def do_scroll_all(self, filter: dict | None, with_payload: bool | list) -> ScrollPage:
        """Walk every page of matching points and merge them into one page.

        Returns:
            ScrollPage: All matching points; next_page_offset is always None.
        """
        total = await self.do_count(filter)
        points: list[dict] = []
        offset: str | int | None = None
        while True:
            page = await self.do_scroll(filter=filter, with_payload=with_payload, offset=offset)
            points.extend(page.points)
            self.logging.debug("Scrolled %d of %d point(s) from %s.", len(points), total, self.get_collection_name())
            offset = page.next_page_offset
            if offset is None:
                break
        return ScrollPage(points=points)
