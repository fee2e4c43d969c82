import re
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from bson import ObjectId
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.mongo.MongoPool import MongoPool
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import TransientTransportError
from shared.models.config import EnvConfig
from shared.models.record import TEXT_FIELDS, CarRecord, ChangeEvent, ChangeOp


class StoreClientMongo(StoreClientInterface):
    """MongoDB collection of car records, watched through a change stream."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._database_name = self.settings["DATABASE"]
        self._collection_name = self.settings["COLLECTION"]
        self._client_options = {
            "maxPoolSize": int(self.settings["MAX_POOL_SIZE"]),
            "minPoolSize": int(self.settings["MIN_POOL_SIZE"]),
            "serverSelectionTimeoutMS": int(self.settings["SERVER_SELECTION_TIMEOUT_MS"]),
            "maxIdleTimeMS": int(self.settings["MAX_IDLE_TIME_MS"]),
        }
        self._pool: MongoPool | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Mongo"

    ################ CONFIG ##################
    def _get_settings_schema(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="URI"),
            EnvConfig(env_key="DATABASE", default="RAG"),
            EnvConfig(env_key="COLLECTION", default="carproducts"),
            EnvConfig(env_key="MAX_POOL_SIZE", val_type="number", default=10),
            EnvConfig(env_key="MIN_POOL_SIZE", val_type="number", default=2),
            EnvConfig(env_key="SERVER_SELECTION_TIMEOUT_MS", val_type="number", default=5000),
            EnvConfig(env_key="MAX_IDLE_TIME_MS", val_type="number", default=30000),
        ]

    async def _get_collection(self):
        if self._pool is None:
            raise Exception("Store client not initialised. Call boot() before making requests.")
        client = await self._pool.get_client()
        return client[self._database_name][self._collection_name]

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Create the connection pool. The connection itself is opened on first use."""
        if self._pool is None:
            self._pool = MongoPool(self.settings["URI"], self.logging, **self._client_options)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def do_healthcheck(self) -> bool:
        try:
            collection = await self._get_collection()
            await collection.database.command("ping")
            return True
        except (PyMongoError, TransientTransportError) as exc:
            self.logging.warning("MongoDB healthcheck failed: %s", exc)
            return False

    ##########################################
    ############### CONVERTERS ###############
    ##########################################

    @staticmethod
    def _to_object_id(record_id: str) -> ObjectId | None:
        return ObjectId(record_id) if ObjectId.is_valid(record_id) else None

    @staticmethod
    def _to_record(doc: dict[str, Any]) -> CarRecord:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return CarRecord.model_validate(doc)

    def parse_change(self, change: dict[str, Any]) -> ChangeEvent | None:
        """Convert a raw MongoDB change stream document into a ChangeEvent.

        Returns:
            ChangeEvent | None: The event, or None for operation types that do
                not affect individual records (drop, rename, invalidate, ...).
        """
        op = change.get("operationType")
        record_id = str((change.get("documentKey") or {}).get("_id"))
        full_doc = change.get("fullDocument")
        full_record = None
        if full_doc:
            try:
                full_record = self._to_record(full_doc)
            except ValidationError as exc:
                # the event is still routed, the debounced sync fetches the record itself
                self.logging.warning("Invalid document in %s event for record id=%s: %s", op, record_id, exc)

        if op == "insert":
            return ChangeEvent(op=ChangeOp.INSERT, record_id=record_id, full_record=full_record)
        if op == "delete":
            return ChangeEvent(op=ChangeOp.DELETE, record_id=record_id)
        if op == "update":
            description = change.get("updateDescription") or {}
            updated: dict[str, Any] = {}
            for path, value in (description.get("updatedFields") or {}).items():
                # dotted paths address nested values, the top-level field changed
                top = path.split(".", 1)[0]
                updated[top] = value if top == path else (full_doc or {}).get(top)
            for path in description.get("removedFields") or []:
                updated.setdefault(path.split(".", 1)[0], None)
            return ChangeEvent(
                op=ChangeOp.UPDATE,
                record_id=record_id,
                changed_fields=set(updated),
                updated_values=updated,
                full_record=full_record,
            )
        if op == "replace":
            fields = set((full_doc or {}).keys()) - {"_id"}
            return ChangeEvent(
                op=ChangeOp.UPDATE,
                record_id=record_id,
                changed_fields=fields | set(TEXT_FIELDS),
                updated_values={key: value for key, value in (full_doc or {}).items() if key != "_id"},
                full_record=full_record,
            )
        self.logging.debug("Ignoring change stream event of type '%s'.", op)
        return None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_record(self, record_id: str) -> CarRecord | None:
        oid = self._to_object_id(record_id)
        if oid is None:
            return None
        collection = await self._get_collection()
        doc = await collection.find_one({"_id": oid})
        return self._to_record(doc) if doc else None

    @staticmethod
    def _build_query(filters: dict[str, str] | None) -> dict[str, Any]:
        return {
            field: {"$regex": re.escape(value), "$options": "i"}
            for field, value in (filters or {}).items()
            if value
        }

    async def do_list_records(self, page: int = 1, limit: int = 10, filters: dict[str, str] | None = None) -> tuple[list[CarRecord], int]:
        query = self._build_query(filters)
        collection = await self._get_collection()
        cursor = collection.find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
        records = [self._to_record(doc) async for doc in cursor]
        total = await collection.count_documents(query)
        return records, total

    async def do_count_records(self, filters: dict[str, str] | None = None) -> int:
        collection = await self._get_collection()
        return await collection.count_documents(self._build_query(filters))

    async def do_iter_records(self) -> AsyncIterator[CarRecord]:
        collection = await self._get_collection()
        async for doc in collection.find({}):
            yield self._to_record(doc)

    async def do_create_record(self, data: dict[str, Any]) -> CarRecord:
        now = datetime.now(timezone.utc)
        doc = {"available": True, **data, "createdAt": now, "updatedAt": now}
        collection = await self._get_collection()
        result = await collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return self._to_record(doc)

    async def do_update_record(self, record_id: str, data: dict[str, Any]) -> CarRecord | None:
        oid = self._to_object_id(record_id)
        if oid is None:
            return None
        collection = await self._get_collection()
        doc = await collection.find_one_and_update(
            {"_id": oid},
            {"$set": {**data, "updatedAt": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_record(doc) if doc else None

    async def do_delete_record(self, record_id: str) -> CarRecord | None:
        oid = self._to_object_id(record_id)
        if oid is None:
            return None
        collection = await self._get_collection()
        doc = await collection.find_one_and_delete({"_id": oid})
        return self._to_record(doc) if doc else None

    async def do_watch(self) -> AsyncIterator[ChangeEvent]:
        collection = await self._get_collection()
        try:
            async with await collection.watch(full_document="updateLookup") as stream:
                self.logging.info(
                    "Watching for changes in %s.%s...", self._database_name, self._collection_name
                )
                async for change in stream:
                    event = self.parse_change(change)
                    if event is not None:
                        yield event
        except PyMongoError as exc:
            raise TransientTransportError(f"MongoDB change stream failed: {exc}") from exc
