"""HTTP surface tests with FastAPI's TestClient against in-memory backends."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.routers.AskRouter import router as ask_router
from server.routers.CarRouter import router as car_router
from server.routers.HealthRouter import router as health_router
from services.vector_sync.ChangeFeedWatcher import ChangeFeedWatcher
from services.vector_sync.DebounceScheduler import DebounceScheduler


@pytest.fixture
def app(helper_config, logger, store, sync_service, index_store, answer_composer, cache) -> FastAPI:
    app = FastAPI()
    app.include_router(ask_router)
    app.include_router(car_router)
    app.include_router(health_router)
    scheduler = DebounceScheduler(action=sync_service.do_record_sync, logger=logger)
    app.state.logging = logger
    app.state.app_version = "test"
    app.state.helper_config = helper_config
    app.state.store_client = store
    app.state.answer_composer = answer_composer
    app.state.retrieval_cache = cache
    app.state.debounce_scheduler = scheduler
    app.state.watcher = ChangeFeedWatcher(helper_config=helper_config, store_client=store, scheduler=scheduler, index_store=index_store)
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestCars:
    def test_create_and_get(self, client, store):
        response = client.post("/cars", json={"name": "Corolla", "brand": "Toyota", "price": 20000})
        assert response.status_code == 201
        car = response.json()["car"]
        assert car["available"] is True
        fetched = client.get(f"/cars/{car['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["car"]["name"] == "Corolla"

    def test_create_requires_name_and_brand(self, client):
        response = client.post("/cars", json={"price": 1})
        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "validation"
        assert response.json()["detail"]["message"] == "Name and brand are required fields"

    def test_get_missing(self, client):
        response = client.get("/cars/car-404")
        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "not_found"

    def test_list_with_filters_and_pages(self, client, store):
        for i in range(12):
            store.insert({"name": f"Car {i}", "brand": "Toyota" if i % 2 else "Ford", "category": "Sedan"}, emit=False)
        response = client.get("/cars", params={"brand": "toyota", "limit": 4, "page": 2})
        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 6
        assert body["totalPages"] == 2
        assert body["currentPage"] == 2
        assert len(body["cars"]) == 2
        assert all(car["brand"] == "Toyota" for car in body["cars"])

    def test_update(self, client, store):
        record_id = store.insert({"name": "Corolla", "brand": "Toyota"}, emit=False)
        response = client.put(f"/cars/{record_id}", json={"price": 18000})
        assert response.status_code == 200
        assert response.json()["car"]["price"] == 18000

    def test_update_rejects_empty_name(self, client, store):
        record_id = store.insert({"name": "Corolla", "brand": "Toyota"}, emit=False)
        response = client.put(f"/cars/{record_id}", json={"name": ""})
        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Name cannot be empty"

    def test_update_missing(self, client):
        response = client.put("/cars/car-404", json={"price": 1})
        assert response.status_code == 404

    def test_delete(self, client, store):
        record_id = store.insert({"name": "Corolla", "brand": "Toyota"}, emit=False)
        assert client.delete(f"/cars/{record_id}").status_code == 200
        assert client.delete(f"/cars/{record_id}").status_code == 404

    def test_bulk_partial_failure(self, client):
        response = client.post("/cars/bulk", json=[{"name": "Corolla", "brand": "Toyota"}, {"name": "No brand"}])
        assert response.status_code == 207
        body = response.json()
        assert body["successful"] == 1
        assert body["errors"][0]["index"] == 1

    def test_bulk_empty(self, client):
        assert client.post("/cars/bulk", json=[]).status_code == 400

    def test_writes_only_touch_the_store(self, client, store, rag_client):
        client.post("/cars", json={"name": "Corolla", "brand": "Toyota"})
        assert rag_client.points == {}
        assert store.feed.qsize() == 1


class TestAsk:
    def test_empty_query(self, client):
        response = client.post("/ask", json={"query": "   "})
        assert response.status_code == 400
        assert response.json()["detail"]["kind"] == "validation"

    def test_answer_then_cached(self, client):
        first = client.post("/ask", json={"query": "cheap sedan"})
        assert first.status_code == 200
        assert first.json()["cached"] is False
        second = client.post("/ask", json={"query": "Cheap Sedan"})
        assert second.json()["cached"] is True

    def test_generation_failure(self, client, llm_client):
        llm_client.fail = True
        response = client.post("/ask", json={"query": "cheap sedan"})
        assert response.status_code == 500
        assert response.json()["detail"]["kind"] == "derived_data"

    def test_api_key_enforced_when_configured(self, client, monkeypatch):
        monkeypatch.setenv("API_SERVER_API_KEY", "secret")
        assert client.post("/ask", json={"query": "x"}).status_code == 401
        response = client.post("/ask", json={"query": "x"}, headers={"X-Api-Key": "secret"})
        assert response.status_code == 200


class TestHealth:
    def test_reports_background_state(self, client, cache):
        cache.set("q", "a")
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["watcher"]["status"] == "stopped"
        assert body["pending_debounce"] == 0
        assert body["cache_size"] == 1
