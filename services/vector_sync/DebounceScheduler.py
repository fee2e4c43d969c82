"""Per-record debouncing of re-embedding work.

A burst of text-affecting changes to the same record collapses into a single
action that runs once the record has been quiet for the debounce delay. The
action receives only the record id and is expected to fetch fresh state.
Actions of the same record never overlap.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

DEBOUNCE_SECONDS = 3.0


class DebounceScheduler:
    def __init__(
        self,
        action: Callable[[str], Awaitable[Any]],
        logger: logging.Logger,
        delay: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.logging = logger
        self._action = action
        self._delay = delay
        self._pending: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()
        # fired actions by record id, kept referenced until they finish
        self._running: dict[str, asyncio.Task] = {}

    ##########################################
    ############### SCHEDULING ###############
    ##########################################

    async def schedule(self, record_id: str, payload: Any = None) -> None:
        """(Re)start the timer of a record.

        Any pending timer for the same id is cancelled first, so at most one
        timer per record exists at any time. The payload is only used for
        logging; the action always works on the state fetched at fire time.
        """
        async with self._lock:
            previous = self._pending.pop(record_id, None)
            if previous is not None:
                previous.cancel()
                self.logging.debug("Debounce timer superseded for record id=%s.", record_id)
            self._pending[record_id] = asyncio.create_task(self._fire_after_delay(record_id), name=f"debounce-{record_id}")
        if payload is not None:
            self.logging.debug("Scheduled re-embedding for record id=%s in %.1fs: %s", record_id, self._delay, payload)

    async def cancel(self, record_id: str) -> bool:
        """Drop the pending timer of a record and wait for its in-flight action.

        A fired action is not interrupted. It runs to completion before this
        returns, so a delete issued afterwards is never undone by a late upsert.

        Returns:
            bool: True if a pending timer was cancelled.
        """
        async with self._lock:
            task = self._pending.pop(record_id, None)
            running = self._running.get(record_id)
        if task is not None:
            task.cancel()
            self.logging.debug("Debounce timer cancelled for record id=%s.", record_id)
        if running is not None:
            self.logging.debug("Waiting for the in-flight action of record id=%s.", record_id)
            # asyncio.wait does not cancel the action when the caller is cancelled
            await asyncio.wait({running})
        return task is not None

    async def close(self) -> None:
        """Cancel every pending timer and wait for fired actions to finish."""
        async with self._lock:
            tasks = list(self._pending.values())
            self._pending.clear()
            running = list(self._running.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        if tasks:
            self.logging.info("Debounce scheduler closed, %d pending timer(s) dropped.", len(tasks))

    ##########################################
    ############## INTROSPECTION #############
    ##########################################

    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, record_id: str) -> bool:
        return record_id in self._pending

    def is_running(self, record_id: str) -> bool:
        return record_id in self._running

    ##########################################
    ################# FIRING #################
    ##########################################

    async def _fire_after_delay(self, record_id: str) -> None:
        await asyncio.sleep(self._delay)
        async with self._lock:
            if self._pending.get(record_id) is not asyncio.current_task():
                return
            del self._pending[record_id]
            # detached from the timer map: from here on the action is no longer cancellable
            previous = self._running.get(record_id)
            runner = asyncio.create_task(self._run_action(record_id, previous), name=f"debounce-fire-{record_id}")
            self._running[record_id] = runner
        runner.add_done_callback(lambda done: self._forget_runner(record_id, done))

    def _forget_runner(self, record_id: str, runner: asyncio.Task) -> None:
        if self._running.get(record_id) is runner:
            del self._running[record_id]

    async def _run_action(self, record_id: str, previous: asyncio.Task | None) -> None:
        if previous is not None:
            await asyncio.wait({previous})
        try:
            await self._action(record_id)
        except Exception as exc:
            self.logging.error("Debounced action failed for record id=%s: %s", record_id, exc)
