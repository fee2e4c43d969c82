"""Tests for environment configuration and client resolution."""

import pytest

from shared.clients.ClientManager import ClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.clients.store.mongo.StoreClientMongo import StoreClientMongo


class TestHelperConfig:
    def test_string_default_and_strip(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_NAME", "  value ")
        assert helper_config.get_string_val("some_name") == "value"
        assert helper_config.get_string_val("UNSET_NAME_XYZ", default="fallback") == "fallback"

    def test_missing_required_value(self, helper_config):
        with pytest.raises(ValueError, match="UNSET_NAME_XYZ"):
            helper_config.get_string_val("UNSET_NAME_XYZ")

    def test_empty_string_counts_as_unset(self, helper_config, monkeypatch):
        monkeypatch.setenv("EMPTY_NAME", "")
        assert helper_config.get_number_val("EMPTY_NAME", default=3) == 3

    def test_numbers(self, helper_config, monkeypatch):
        monkeypatch.setenv("INT_VAL", "180")
        monkeypatch.setenv("FLOAT_VAL", "2.5")
        monkeypatch.setenv("BAD_VAL", "ten")
        assert helper_config.get_number_val("INT_VAL") == 180
        assert helper_config.get_number_val("FLOAT_VAL") == 2.5
        with pytest.raises(ValueError, match="not a valid number"):
            helper_config.get_number_val("BAD_VAL")

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("off", False)])
    def test_bools(self, helper_config, monkeypatch, raw, expected):
        monkeypatch.setenv("BOOL_VAL", raw)
        assert helper_config.get_bool_val("BOOL_VAL") is expected

    def test_lists(self, helper_config, monkeypatch):
        monkeypatch.setenv("LIST_VAL", "[1, 2,3]")
        assert helper_config.get_list_val("LIST_VAL", element_type=int) == [1, 2, 3]
        monkeypatch.setenv("LIST_VAL", "1,2")
        with pytest.raises(ValueError, match="format"):
            helper_config.get_list_val("LIST_VAL")


class TestClientManager:
    def test_resolves_configured_engines(self, helper_config, monkeypatch):
        monkeypatch.setenv("STORE_ENGINE", "mongo")
        monkeypatch.setenv("STORE_MONGO_URI", "mongodb://localhost:27017")
        monkeypatch.setenv("RAG_ENGINE", "QDRANT")
        monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
        manager = ClientManager(helper_config=helper_config)

        store = manager.get_client("store")
        rag = manager.get_client("RAG")

        assert isinstance(store, StoreClientMongo)
        assert isinstance(rag, RAGClientQdrant)
        assert manager.get_client("store") is store
        assert manager.get_clients() == [store, rag]
        assert rag.get_collection_name() == "carvectors"

    def test_unknown_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_ENGINE", "pinecone")
        with pytest.raises(ValueError, match="Unsupported rag engine"):
            ClientManager(helper_config=helper_config).get_client("rag")

    def test_unknown_client_type(self, helper_config):
        with pytest.raises(ValueError, match="Unknown client type"):
            ClientManager(helper_config=helper_config).get_client("search")

    def test_engine_scoped_keys(self, helper_config, monkeypatch):
        monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
        monkeypatch.setenv("RAG_QDRANT_COLLECTION", "fleet")
        client = RAGClientQdrant(helper_config=helper_config)
        assert client.get_collection_name() == "fleet"
        assert client._get_config_key_name("api_key") == "RAG_QDRANT_API_KEY"
