"""Synchronisation service.

Re-embeds individual records on demand (the debounced change feed path) and
performs full backfills: every record of the store is embedded and upserted
into the vector index, and vectors of records that no longer exist are removed.
"""

import asyncio

from services.vector_sync.EmbeddingPipeline import EmbeddingPipeline
from services.vector_sync.VectorIndexStore import VectorIndexStore
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.record import CarRecord

RECORD_CONCURRENCY = 5  # max parallel record syncs


class SyncService:
    """Orchestrates embedding of store records into the vector index."""

    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        pipeline: EmbeddingPipeline,
        index_store: VectorIndexStore,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._pipeline = pipeline
        self._index_store = index_store

    ##########################################
    ############## RECORD SYNC ###############
    ##########################################

    async def do_record_sync(self, record_id: str) -> bool:
        """Re-embed a single record from its current state in the store.

        Args:
            record_id (str): Id of the record to sync.

        Returns:
            bool: True if the record was synced, False if it no longer exists.

        Raises:
            DerivedDataError: If embedding fails; the index is left untouched.
        """
        record = await self._store_client.do_fetch_record(record_id)
        if record is None:
            self.logging.info("Record id=%s no longer exists, skipping re-embedding.", record_id)
            return False
        await self._sync_record(record)
        return True

    async def _sync_record(self, record: CarRecord) -> None:
        chunks = await self._pipeline.embed_record(record)
        await self._index_store.upsert_record(record, chunks)

    ##########################################
    ############### FULL SYNC ################
    ##########################################

    async def do_full_sync(self) -> dict[str, int]:
        """Embed every record of the store and remove orphaned vectors.

        Returns:
            dict[str, int]: Counters "synced", "errors" and "orphans_removed".
        """
        self.logging.info("Starting full sync...")

        records: list[CarRecord] = [record async for record in self._store_client.do_iter_records()]
        if not records:
            self.logging.warning("No records found in the store.")

        self.logging.info("Processing %d records...", len(records))

        # process records concurrently with bounded parallelism
        sem = asyncio.Semaphore(RECORD_CONCURRENCY)
        results = await asyncio.gather(
            *[self._sync_record_bounded(record, sem) for record in records],
            return_exceptions=True,
        )

        synced = sum(1 for r in results if r is True)
        errors = sum(1 for r in results if isinstance(r, Exception))
        self.logging.info("Full sync complete: %d synced, %d errors.", synced, errors, color="green")

        removed = await self._cleanup_orphans({record.id for record in records})
        return {"synced": synced, "errors": errors, "orphans_removed": removed}

    async def _sync_record_bounded(self, record: CarRecord, sem: asyncio.Semaphore) -> bool:
        async with sem:
            try:
                await self._sync_record(record)
            except Exception as exc:
                self.logging.error("Sync failed for record id=%s ('%s'): %s", record.id, record.name, exc)
                raise
            return True

    ##########################################
    ############ ORPHAN CLEANUP ##############
    ##########################################

    async def _cleanup_orphans(self, store_ids: set[str]) -> int:
        """Remove vectors whose back-reference id is absent from the store.

        Args:
            store_ids (set[str]): Ids of every record currently in the store.

        Returns:
            int: Number of records whose vectors were removed.
        """
        self.logging.info("Starting orphan cleanup (scrolling the index for stale record IDs)...")
        try:
            indexed_ids = await self._index_store.list_back_ref_ids()
        except Exception as exc:
            self.logging.error("Orphan cleanup scroll failed: %s. Skipping cleanup.", exc)
            return 0

        orphan_ids = indexed_ids - store_ids
        if not orphan_ids:
            self.logging.info("Orphan cleanup: no stale records found.")
            return 0

        self.logging.info("Orphan cleanup: removing vectors for %d stale record(s).", len(orphan_ids))
        removed = 0
        for orphan_id in sorted(orphan_ids):
            try:
                await self._index_store.delete_by_back_ref(orphan_id)
                removed += 1
            except Exception as exc:
                self.logging.error("Orphan cleanup: failed to delete vectors for record id=%s: %s", orphan_id, exc)

        self.logging.info("Orphan cleanup complete: removed vectors for %d record(s).", removed)
        return removed
