"""Change feed watcher.

Consumes the change feed of the primary store and routes each mutation:

  insert / text-field update  -> debounce scheduler (re-embedding)
  passthrough-only update     -> metadata patch in the vector index
  delete                      -> cancel pending debounce, delete vectors

A lost subscription is re-established after a backoff delay. Errors raised
while handling a single event are logged and never end the subscription.
"""

import asyncio
import logging
from contextlib import aclosing

from services.vector_sync.DebounceScheduler import DebounceScheduler
from services.vector_sync.TextBuilder import build_record_text
from services.vector_sync.VectorIndexStore import VectorIndexStore
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.record import ChangeEvent, ChangeOp

RECONNECT_DELAY_SECONDS = 5.0


class ChangeFeedWatcher:
    def __init__(
        self,
        helper_config: HelperConfig,
        store_client: StoreClientInterface,
        scheduler: DebounceScheduler,
        index_store: VectorIndexStore,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store_client = store_client
        self._scheduler = scheduler
        self._index_store = index_store

        self._reconnect_delay = float(helper_config.get_number_val("SYNC_RECONNECT_DELAY_SECONDS", default=RECONNECT_DELAY_SECONDS))
        self._backoff_factor = float(helper_config.get_number_val("SYNC_RECONNECT_BACKOFF_FACTOR", default=1.0))
        self._max_delay = float(helper_config.get_number_val("SYNC_RECONNECT_MAX_DELAY_SECONDS", default=60.0))
        # 0 retries forever
        self._max_retries = int(helper_config.get_number_val("SYNC_RECONNECT_MAX_RETRIES", default=0))

        self._stop_event = asyncio.Event()
        self._running = False
        self._connected = False
        self._reconnects = 0
        self._events_processed = 0

    ##########################################
    ################ STATE ###################
    ##########################################

    def is_running(self) -> bool:
        return self._running

    def get_state(self) -> dict:
        if not self._running:
            status = "stopped"
        elif self._connected:
            status = "watching"
        else:
            status = "reconnecting"
        return {"status": status, "reconnects": self._reconnects, "events_processed": self._events_processed}

    def stop(self) -> None:
        """Ask the watcher to end. Interrupts a pending backoff wait immediately."""
        self._stop_event.set()

    def get_backoff_delay(self, attempt: int) -> float:
        """Delay before the given (1-based) reconnect attempt."""
        delay = self._reconnect_delay * (self._backoff_factor ** max(attempt - 1, 0))
        return min(delay, self._max_delay) if self._backoff_factor > 1.0 else delay

    ##########################################
    ################ LOOP ####################
    ##########################################

    async def watch(self) -> None:
        """Consume the change feed until stop() is called or the task is cancelled."""
        self._stop_event.clear()
        self._running = True
        attempt = 0
        try:
            while not self._stop_event.is_set():
                try:
                    async with aclosing(self._store_client.do_watch()) as events:
                        self._connected = True
                        async for event in events:
                            attempt = 0
                            await self._process_event(event)
                            if self._stop_event.is_set():
                                break
                    if self._stop_event.is_set():
                        break
                    self.logging.warning("Change stream ended unexpectedly.")
                except Exception as exc:
                    self.logging.error("Change stream error: %s", exc)
                finally:
                    self._connected = False

                attempt += 1
                if self._max_retries and attempt > self._max_retries:
                    self.logging.error("Giving up on the change stream after %d failed attempt(s).", self._max_retries)
                    break
                delay = self.get_backoff_delay(attempt)
                self.logging.warning("Attempting to reconnect change stream in %.1fs...", delay, color="yellow")
                if await self._wait_for_stop(delay):
                    break
                self._reconnects += 1
        finally:
            self._running = False
            self.logging.info("Change feed watcher stopped.")

    async def _wait_for_stop(self, delay: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    async def _process_event(self, event: ChangeEvent) -> None:
        self._events_processed += 1
        try:
            await self._handle_event(event)
        except Exception as exc:
            self.logging.error("Failed to handle %s event for record id=%s: %s", event.op.value, event.record_id, exc)

    ##########################################
    ############### ROUTING ##################
    ##########################################

    async def _handle_event(self, event: ChangeEvent) -> None:
        if event.op == ChangeOp.DELETE:
            # also waits for an in-flight upsert of the record
            await self._scheduler.cancel(event.record_id)
            await self._index_store.delete_by_back_ref(event.record_id)
            return

        # inserts always embed, even when only passthrough fields were set
        if event.op == ChangeOp.INSERT or event.touches_text():
            text = None
            if event.full_record and self.logging.isEnabledFor(logging.DEBUG):
                text = build_record_text(event.full_record)
            await self._scheduler.schedule(event.record_id, payload=text)
            return

        changes = event.passthrough_changes()
        if changes:
            await self._index_store.patch_metadata(event.record_id, changes)
            return

        self.logging.debug(
            "No relevant fields updated for record id=%s (%s), skipping.", event.record_id, sorted(event.changed_fields)
        )
