"""
Shared test fixtures.

Backends are replaced by the in-memory fakes in fakes.py; HTTP clients are
tested against httpx.MockTransport. No test needs a running service.
"""

import logging

import pytest

from fakes import FakeEmbedClient, FakeLLMClient, FakeRAGClient, FakeStoreClient
from server.core.AnswerComposer import AnswerComposer
from server.core.RetrievalCache import RetrievalCache
from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from services.vector_sync.SyncService import SyncService
from services.vector_sync.VectorIndexStore import VectorIndexStore
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def logger() -> ColorLogger:
    return ColorLogger(logging.getLogger("catalog_ai_bridge.tests"))


@pytest.fixture
def helper_config(logger, monkeypatch) -> HelperConfig:
    monkeypatch.setenv("SYNC_RECONNECT_DELAY_SECONDS", "0.01")
    monkeypatch.delenv("API_SERVER_API_KEY", raising=False)
    return HelperConfig(logger=logger)


@pytest.fixture
def store(helper_config) -> FakeStoreClient:
    return FakeStoreClient(helper_config=helper_config)


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def pipeline(helper_config, embed_client) -> EmbeddingPipeline:
    return EmbeddingPipeline(helper_config=helper_config, embed_client=embed_client)


@pytest.fixture
def index_store(helper_config, rag_client) -> VectorIndexStore:
    return VectorIndexStore(helper_config=helper_config, rag_client=rag_client)


@pytest.fixture
def sync_service(helper_config, store, pipeline, index_store) -> SyncService:
    return SyncService(helper_config=helper_config, store_client=store, pipeline=pipeline, index_store=index_store)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(logger, clock) -> RetrievalCache:
    return RetrievalCache(logger=logger, ttl_seconds=180, clock=clock)


@pytest.fixture
def answer_composer(helper_config, pipeline, index_store, llm_client, cache) -> AnswerComposer:
    return AnswerComposer(
        helper_config=helper_config,
        pipeline=pipeline,
        index_store=index_store,
        llm_client=llm_client,
        cache=cache,
    )
