"""Tests for the MongoDB store client that need no running server."""

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from shared.clients.store.mongo.MongoPool import MongoPool
from shared.clients.store.mongo.StoreClientMongo import StoreClientMongo
from shared.helper.errors import RecordValidationError, TransientTransportError
from shared.models.record import TEXT_FIELDS, ChangeOp

RECORD_ID = ObjectId()


@pytest.fixture
def mongo_store(helper_config, monkeypatch) -> StoreClientMongo:
    monkeypatch.setenv("STORE_MONGO_URI", "mongodb://localhost:27017")
    return StoreClientMongo(helper_config=helper_config)


def _doc(**fields) -> dict:
    return {"_id": RECORD_ID, "name": "Corolla", "brand": "Toyota", "price": 20000, **fields}


class TestParseChange:
    def test_insert_carries_full_record(self, mongo_store):
        event = mongo_store.parse_change({
            "operationType": "insert",
            "documentKey": {"_id": RECORD_ID},
            "fullDocument": _doc(),
        })
        assert event.op == ChangeOp.INSERT
        assert event.record_id == str(RECORD_ID)
        assert event.full_record.id == str(RECORD_ID)
        assert event.full_record.name == "Corolla"

    def test_update_collects_top_level_fields(self, mongo_store):
        event = mongo_store.parse_change({
            "operationType": "update",
            "documentKey": {"_id": RECORD_ID},
            "updateDescription": {
                "updatedFields": {"price": 18000, "specs.color": "red"},
                "removedFields": ["mileage"],
            },
            "fullDocument": _doc(price=18000, specs={"color": "red"}),
        })
        assert event.op == ChangeOp.UPDATE
        assert event.changed_fields == {"price", "specs", "mileage"}
        assert event.updated_values["price"] == 18000
        assert event.updated_values["specs"] == {"color": "red"}
        assert event.updated_values["mileage"] is None
        assert event.passthrough_changes() == {"price": 18000}
        assert event.touches_text() is True

    def test_price_only_update_does_not_touch_text(self, mongo_store):
        event = mongo_store.parse_change({
            "operationType": "update",
            "documentKey": {"_id": RECORD_ID},
            "updateDescription": {"updatedFields": {"price": 18000, "updatedAt": "now"}, "removedFields": []},
            "fullDocument": None,
        })
        assert event.touches_text() is False
        assert event.full_record is None
        assert event.passthrough_changes() == {"price": 18000}

    def test_replace_counts_as_text_update(self, mongo_store):
        event = mongo_store.parse_change({
            "operationType": "replace",
            "documentKey": {"_id": RECORD_ID},
            "fullDocument": _doc(available=False),
        })
        assert event.op == ChangeOp.UPDATE
        assert set(TEXT_FIELDS) <= event.changed_fields
        assert event.passthrough_changes()["available"] is False

    def test_delete(self, mongo_store):
        event = mongo_store.parse_change({"operationType": "delete", "documentKey": {"_id": RECORD_ID}})
        assert event.op == ChangeOp.DELETE
        assert event.full_record is None

    @pytest.mark.parametrize("op", ["drop", "rename", "invalidate"])
    def test_collection_level_events_ignored(self, mongo_store, op):
        assert mongo_store.parse_change({"operationType": op}) is None


class TestQueries:
    def test_filters_are_escaped_case_insensitive_substrings(self):
        query = StoreClientMongo._build_query({"brand": "Mercedes-Benz (AMG)", "category": ""})
        assert query == {"brand": {"$regex": r"Mercedes\-Benz\ \(AMG\)", "$options": "i"}}

    def test_invalid_object_id(self):
        assert StoreClientMongo._to_object_id("not-an-id") is None
        assert StoreClientMongo._to_object_id(str(RECORD_ID)) == RECORD_ID

    @pytest.mark.asyncio
    async def test_invalid_id_is_not_found_without_connecting(self, mongo_store):
        assert await mongo_store.do_fetch_record("not-an-id") is None
        assert await mongo_store.do_delete_record("not-an-id") is None

    def test_missing_uri_rejected(self, helper_config, monkeypatch):
        monkeypatch.delenv("STORE_MONGO_URI", raising=False)
        with pytest.raises(ValueError, match="STORE_MONGO_URI"):
            StoreClientMongo(helper_config=helper_config)


class TestValidation:
    def test_create_requires_name_and_brand(self, mongo_store):
        with pytest.raises(RecordValidationError, match="Name and brand are required fields"):
            mongo_store.validate_create({"price": 1})

    def test_create_requires_brand(self, mongo_store):
        with pytest.raises(RecordValidationError, match="Brand is a required field"):
            mongo_store.validate_create({"name": "Corolla"})

    def test_create_strips_unknown_fields(self, mongo_store):
        cleaned = mongo_store.validate_create({"name": "Corolla", "brand": "Toyota", "_id": "x", "createdAt": "y"})
        assert cleaned == {"name": "Corolla", "brand": "Toyota"}

    def test_update_rejects_empty_required_field(self, mongo_store):
        with pytest.raises(RecordValidationError, match="Name cannot be empty"):
            mongo_store.validate_update({"name": ""})

    def test_update_needs_a_writable_field(self, mongo_store):
        with pytest.raises(RecordValidationError, match="No updatable fields provided"):
            mongo_store.validate_update({"createdAt": "x"})


class FakeAdmin:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.commands: list[str] = []

    async def command(self, name: str) -> dict:
        self.commands.append(name)
        if self.error:
            raise self.error
        return {"ok": 1}


class FakeMongoClient:
    def __init__(self, uri: str, error: Exception | None = None, **options) -> None:
        self.uri = uri
        self.options = options
        self.admin = FakeAdmin(error)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class TestMongoPool:
    @pytest.mark.asyncio
    async def test_opens_once_and_reuses(self, logger):
        created: list[FakeMongoClient] = []

        def factory(uri, **options):
            created.append(FakeMongoClient(uri, **options))
            return created[-1]

        pool = MongoPool("mongodb://db", logger, client_factory=factory, maxPoolSize=10)
        assert pool.is_open() is False

        first = await pool.get_client()
        second = await pool.get_client()

        assert first is second
        assert len(created) == 1
        assert first.options == {"maxPoolSize": 10}
        assert first.admin.commands == ["ping"]

        await pool.close()
        assert first.closed is True
        assert pool.is_open() is False

    @pytest.mark.asyncio
    async def test_unreachable_server(self, logger):
        clients: list[FakeMongoClient] = []

        def factory(uri, **options):
            clients.append(FakeMongoClient(uri, error=ServerSelectionTimeoutError("no servers"), **options))
            return clients[-1]

        pool = MongoPool("mongodb://db", logger, client_factory=factory)
        with pytest.raises(TransientTransportError):
            await pool.get_client()
        assert clients[0].closed is True
        assert pool.is_open() is False


class FakeChangeStream:
    def __init__(self, changes: list[dict]) -> None:
        self.changes = changes

    async def __aenter__(self) -> "FakeChangeStream":
        return self

    async def __aexit__(self, *exc) -> None:
        pass

    async def _iterate(self):
        for change in self.changes:
            yield change

    def __aiter__(self):
        return self._iterate()


class FakeCollection:
    def __init__(self, changes: list[dict]) -> None:
        self.changes = changes
        self.watch_options: dict = {}

    async def watch(self, **options) -> FakeChangeStream:
        self.watch_options = options
        return FakeChangeStream(self.changes)


class FakePool:
    def __init__(self, client: dict) -> None:
        self.client = client

    async def get_client(self) -> dict:
        return self.client

    async def close(self) -> None:
        pass


class TestWatch:
    @pytest.mark.asyncio
    async def test_invalid_document_does_not_end_the_stream(self, mongo_store):
        other_id = ObjectId()
        collection = FakeCollection([
            {
                "operationType": "insert",
                "documentKey": {"_id": RECORD_ID},
                "fullDocument": {"_id": RECORD_ID, "name": "Corolla"},
            },
            {"operationType": "delete", "documentKey": {"_id": other_id}},
        ])
        mongo_store._pool = FakePool({mongo_store._database_name: {mongo_store._collection_name: collection}})

        events = [event async for event in mongo_store.do_watch()]

        assert [event.op for event in events] == [ChangeOp.INSERT, ChangeOp.DELETE]
        assert events[0].record_id == str(RECORD_ID)
        assert events[0].full_record is None
        assert events[1].record_id == str(other_id)
        assert collection.watch_options == {"full_document": "updateLookup"}

    def test_invalid_update_document_keeps_changed_values(self, mongo_store):
        event = mongo_store.parse_change({
            "operationType": "update",
            "documentKey": {"_id": RECORD_ID},
            "updateDescription": {"updatedFields": {"price": 18000}},
            "fullDocument": _doc(price="not a number"),
        })
        assert event.full_record is None
        assert event.passthrough_changes() == {"price": 18000}
