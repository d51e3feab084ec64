"""Fan-out of freshly ingested readings to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, Protocol, Set
from uuid import uuid4

from app.schemas import LiveMessage, Reading
from datastore.reading_store import ReadingStore, build_default_store

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Delivery target registered with the broadcaster."""

    @property
    def ready(self) -> bool: ...

    async def send_json(self, payload: Dict[str, Any]) -> None: ...


def live_message(reading: Reading) -> Dict[str, Any]:
    return LiveMessage(data=reading).model_dump(mode="json")


class Broadcaster:
    """Registry of live subscribers with best-effort, fire-and-forget delivery.

    Subscribers that are not ready when a reading is published are skipped;
    nothing is queued for them. A delivery that fails removes the subscriber.
    """

    def __init__(self, store: ReadingStore) -> None:
        self.store = store
        self._subscribers: Dict[str, Subscriber] = {}
        self._pending: Set[asyncio.Task[bool]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, subscriber: Subscriber) -> str:
        """Register ``subscriber`` and send it the current latest reading, if any."""
        subscriber_id = str(uuid4())
        self._subscribers[subscriber_id] = subscriber
        logger.info(
            "Subscriber connected",
            extra={"subscriber_id": subscriber_id, "subscriber_count": self.subscriber_count},
        )

        latest = self.store.latest()
        if latest is not None:
            await self._deliver(subscriber_id, subscriber, live_message(latest))
        return subscriber_id

    def unsubscribe(self, subscriber_id: str) -> None:
        if self._subscribers.pop(subscriber_id, None) is None:
            return
        logger.info(
            "Subscriber disconnected",
            extra={"subscriber_id": subscriber_id, "subscriber_count": self.subscriber_count},
        )

    async def publish(self, reading: Reading) -> int:
        """Schedule delivery of ``reading`` to every ready subscriber.

        Returns the number of deliveries scheduled. The caller does not wait
        for them to complete.
        """
        message = live_message(reading)
        loop = asyncio.get_running_loop()
        scheduled = 0
        for subscriber_id, subscriber in list(self._subscribers.items()):
            if not subscriber.ready:
                continue
            task = loop.create_task(self._deliver(subscriber_id, subscriber, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            scheduled += 1
        return scheduled

    async def drain(self) -> None:
        """Wait for in-flight deliveries to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)
        self._pending.clear()
        self._subscribers.clear()

    async def _deliver(
        self, subscriber_id: str, subscriber: Subscriber, message: Dict[str, Any]
    ) -> bool:
        try:
            await subscriber.send_json(message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - any transport failure drops the subscriber
            logger.warning(
                "Delivery failed, dropping subscriber: %s",
                exc,
                extra={"subscriber_id": subscriber_id},
            )
            self.unsubscribe(subscriber_id)
            return False
        return True


@lru_cache
def build_default_broadcaster() -> Broadcaster:
    return Broadcaster(store=build_default_store())
