import asyncio
import logging
from typing import Any, Callable

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from shared.helper.errors import TransientTransportError


class MongoPool:
    """Lazily opened, shared MongoDB client handle.

    The client (which pools its own connections) is created and verified on
    the first get_client() call and reused afterwards. close() releases it;
    a later get_client() opens a fresh one.
    """

    def __init__(
        self,
        uri: str,
        logger: logging.Logger,
        client_factory: Callable[..., Any] = AsyncMongoClient,
        **client_options: Any,
    ) -> None:
        self.logging = logger
        self._uri = uri
        self._client_factory = client_factory
        self._client_options = client_options
        self._client: Any | None = None
        self._lock = asyncio.Lock()

    def is_open(self) -> bool:
        return self._client is not None

    async def get_client(self) -> AsyncMongoClient:
        """Return the shared client, opening it on first use.

        Raises:
            TransientTransportError: If the server cannot be reached.
        """
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                client = self._client_factory(self._uri, **self._client_options)
                try:
                    await client.admin.command("ping")
                except PyMongoError as exc:
                    await client.close()
                    self.logging.error("Failed to connect to MongoDB: %s", exc)
                    raise TransientTransportError(f"MongoDB unreachable: {exc}") from exc
                self._client = client
                self.logging.info("MongoDB connection pool initialized.")
        return self._client

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.close()
                self._client = None
                self.logging.info("MongoDB connection pool closed.")
