import asyncio
from abc import abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import TransientTransportError


class HttpClientInterface(ClientInterface):
    """Base for clients whose backend speaks HTTP.

    Reads "{TYPE}_TIMEOUT", "{TYPE}_MAX_RETRIES" and "{TYPE}_RETRY_DELAY_SECONDS".
    Only transport failures are retried; an HTTP error status is an answer.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        prefix = self.get_client_type().upper()
        self.timeout = helper_config.get_number_val(f"{prefix}_TIMEOUT", default=30.0)
        self.max_retries = int(helper_config.get_number_val(f"{prefix}_MAX_RETRIES", default=1))
        self.retry_delay = helper_config.get_number_val(f"{prefix}_RETRY_DELAY_SECONDS", default=0.5)

        self._client: httpx.AsyncClient | None = None

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers that authenticate against the backend, empty if it needs none."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Backend root URL, e.g. "http://localhost:6333"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Path answered with 2xx while the backend is up."""
        pass

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Create the underlying httpx.AsyncClient.

        Args:
            transport (httpx.AsyncBaseTransport | None): Replaces the network transport, e.g. httpx.MockTransport in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> bool:
        response = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())
        return response.is_success

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send a request to the backend, retrying transport failures.

        At most one of content, data, files and json is sent as the body, in
        that order of precedence.

        Args:
            endpoint (str): Path below the base URL.
            additional_headers (dict | None): Merged over the auth header.
            raise_on_error (bool): Raise on a non-2xx status instead of returning the response.

        Returns:
            httpx.Response: The backend's answer.

        Raises:
            Exception: If boot() was not called, or on a non-2xx status with raise_on_error.
            TransientTransportError: If the backend stayed unreachable through every retry.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        url = self._build_url(endpoint)
        request_kwargs: dict = {
            "headers": {**self._get_auth_header(), **(additional_headers or {})},
            "params": params,
            "timeout": self.timeout,
        }
        for body_key, body in (("content", content), ("data", data), ("files", files), ("json", json)):
            if body is not None:
                request_kwargs[body_key] = body
                break

        response = await self._send_with_retry(method, url, request_kwargs)

        if raise_on_error and not response.is_success:
            self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:500])
            raise Exception(f"Request to {url} failed with status {response.status_code}")
        return response

    async def _send_with_retry(self, method: str, url: str, request_kwargs: dict) -> httpx.Response:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._client.request(method, url, **request_kwargs)
            except httpx.TransportError as exc:
                self.logging.warning("%s %s failed (attempt %d of %d): %s", method, url, attempt, attempts, exc)
                if attempt == attempts:
                    raise TransientTransportError(
                        f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' unreachable: {exc}"
                    ) from exc
                await asyncio.sleep(self.retry_delay)
