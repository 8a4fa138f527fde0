# ==============================================================================
# OUTBOX - Persisted Side-Effect Delivery
# ==============================================================================
# Services enqueue events after their primary write; the dispatcher claims
# due events, runs the registered handler and retries with backoff.
# Delivery is at-least-once: handlers must be idempotent per event.
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from agricsmart.core.constants import Collections, OutboxStatus
from agricsmart.core.settings import settings
from agricsmart.database.adapters.base_adapter import BaseDatabaseAdapter
from agricsmart.utils.helpers import utc_now

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class OutboxService:
    """Write side of the outbox."""

    def __init__(self, adapter: BaseDatabaseAdapter) -> None:
        self._adapter = adapter

    async def enqueue(
        self,
        event_type: str,
        payload: Dict[str, Any],
        dedupe_key: str,
    ) -> bool:
        """
        Persist an event once per ``dedupe_key``.

        Returns:
            True if the event was new, False if it was already queued
        """
        created = await self._adapter.insert_if_absent(
            Collections.OUTBOX,
            {"dedupe_key": dedupe_key},
            {
                "event_type": event_type,
                "payload": payload,
                "dedupe_key": dedupe_key,
                "status": OutboxStatus.PENDING,
                "attempts": 0,
                "available_at": utc_now(),
                "locked_at": None,
                "last_error": None,
            },
        )
        if created:
            logger.debug(f"Outbox event queued: {event_type} ({dedupe_key})")
        return created


class OutboxDispatcher:
    """
    Read side of the outbox.

    ``dispatch_pending`` processes one batch and can be awaited directly;
    ``start``/``stop`` run it on an interval as a background task.
    """

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        handlers: Optional[Dict[str, EventHandler]] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        lease_seconds: Optional[int] = None,
        batch_size: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._adapter = adapter
        self._handlers: Dict[str, EventHandler] = dict(handlers or {})
        self.max_attempts = max_attempts or settings.OUTBOX_MAX_ATTEMPTS
        self.retry_delay = settings.OUTBOX_RETRY_DELAY if retry_delay is None else retry_delay
        self.lease_seconds = lease_seconds or settings.OUTBOX_LEASE_SECONDS
        self.batch_size = batch_size or settings.OUTBOX_BATCH_SIZE
        self.poll_interval = poll_interval or settings.OUTBOX_POLL_INTERVAL
        self._task: Optional[asyncio.Task] = None

    def register(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type] = handler

    async def _claim(self, skip_ids: List[str]) -> Optional[Dict[str, Any]]:
        """Atomically lock one due event (or one whose lease expired)."""
        now = utc_now()
        return await self._adapter.find_one_and_update(
            Collections.OUTBOX,
            {
                "id": {"$nin": skip_ids},
                "$or": [
                    {"status": OutboxStatus.PENDING, "available_at": {"$lte": now}},
                    {
                        "status": OutboxStatus.PROCESSING,
                        "locked_at": {"$lte": now - timedelta(seconds=self.lease_seconds)},
                    },
                ]
            },
            {
                "$set": {"status": OutboxStatus.PROCESSING, "locked_at": now},
                "$inc": {"attempts": 1},
            },
        )

    async def _complete(self, event: Dict[str, Any]) -> None:
        await self._adapter.update_one(
            Collections.OUTBOX,
            {"id": event["id"]},
            {"$set": {"status": OutboxStatus.DONE, "locked_at": None, "last_error": None}},
        )

    async def _fail(self, event: Dict[str, Any], error: str) -> None:
        attempts = event.get("attempts", 1)
        if attempts >= self.max_attempts:
            logger.error(
                f"Outbox event {event['id']} ({event['event_type']}) dead-lettered "
                f"after {attempts} attempts: {error}"
            )
            update = {"status": OutboxStatus.FAILED, "locked_at": None, "last_error": error}
        else:
            delay = self.retry_delay * attempts
            logger.warning(
                f"Outbox event {event['id']} ({event['event_type']}) failed, "
                f"retry {attempts}/{self.max_attempts} in {delay:.0f}s: {error}"
            )
            update = {
                "status": OutboxStatus.PENDING,
                "locked_at": None,
                "last_error": error,
                "available_at": utc_now() + timedelta(seconds=delay),
            }
        await self._adapter.update_one(Collections.OUTBOX, {"id": event["id"]}, {"$set": update})

    async def dispatch_one(self, event: Dict[str, Any]) -> bool:
        """Run the handler for a claimed event. Returns True on success."""
        handler = self._handlers.get(event.get("event_type"))
        if handler is None:
            await self._fail(event, f"No handler for event type {event.get('event_type')}")
            return False
        try:
            await handler(event)
        except Exception as e:
            await self._fail(event, f"{type(e).__name__}: {e}")
            return False
        await self._complete(event)
        return True

    async def dispatch_pending(self, limit: Optional[int] = None) -> int:
        """
        Process up to ``limit`` due events.

        Returns:
            Number of events delivered successfully
        """
        delivered = 0
        # An event is tried at most once per pass, whatever its retry delay
        claimed: List[str] = []
        for _ in range(limit or self.batch_size):
            event = await self._claim(claimed)
            if event is None:
                break
            claimed.append(event["id"])
            if await self.dispatch_one(event):
                delivered += 1
        return delivered

    # ==========================================================================
    # BACKGROUND LOOP
    # ==========================================================================

    async def run(self) -> None:
        logger.info(f"Outbox dispatcher started (interval {self.poll_interval}s)")
        while True:
            try:
                await self.dispatch_pending()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Outbox dispatcher pass failed: {e}")
            await asyncio.sleep(self.poll_interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="outbox-dispatcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Outbox dispatcher stopped")
