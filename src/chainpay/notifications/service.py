"""Notifier — fire-and-forget hand-off of payment events to webhooks.

``notify`` only enqueues; a background worker performs the deliveries.
A full queue drops the notification with a warning.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from chainpay.engine.repository.catalog import WebhookRepository
    from chainpay.metrics.collector import EngineMetrics
    from chainpay.notifications.events import PaymentEvent

logger = logging.getLogger(__name__)

_DEFAULT_QUEUE_SIZE = 1000


class Deliverer(Protocol):
    async def deliver(self, webhook_id: str, payload: dict[str, Any]) -> bool: ...


class Notifier:
    """Asyncio queue feeding a single delivery worker.

    Usage::

        notifier = Notifier(deliverer, webhooks)
        await notifier.start()
        notifier.notify(["wh_1"], {"event": "payment_success", ...})
        await notifier.stop()
    """

    def __init__(
        self,
        deliverer: Deliverer,
        webhooks: WebhookRepository,
        *,
        queue_size: int = _DEFAULT_QUEUE_SIZE,
        enabled: bool = True,
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._deliverer = deliverer
        self._webhooks = webhooks
        self._queue: asyncio.Queue[tuple[list[str], dict[str, Any]]] = asyncio.Queue(maxsize=queue_size)
        self._enabled = enabled
        self._metrics = metrics
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    @property
    def pending(self) -> int:
        """Notifications waiting for the worker."""
        return self._queue.qsize()

    def notify(self, observer_ids: list[str], payload: dict[str, Any]) -> None:
        """Enqueue *payload* for every observer and return immediately."""
        if not self._enabled or not observer_ids:
            return
        try:
            self._queue.put_nowait((list(observer_ids), payload))
        except asyncio.QueueFull:
            logger.warning("Notification queue full, dropping %s event", payload.get("event"))
            if self._metrics:
                self._metrics.inc_notification("dropped")

    async def notify_product(self, product_id: str, event: PaymentEvent) -> None:
        """Notify every webhook observing *product_id*. Never raises."""
        try:
            observer_ids = await self._webhooks.ids_for_product(product_id)
        except Exception:
            logger.exception("Could not load webhooks for product %s", product_id)
            return
        self.notify(observer_ids, event.to_dict())

    async def start(self) -> None:
        """Start the delivery worker."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._worker())

    async def stop(self) -> None:
        """Stop the delivery worker; queued notifications are discarded."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def join(self) -> None:
        """Wait until every queued notification has been handled."""
        await self._queue.join()

    async def _worker(self) -> None:
        while True:
            observer_ids, payload = await self._queue.get()
            try:
                for observer_id in observer_ids:
                    try:
                        await self._deliverer.deliver(observer_id, payload)
                    except Exception:
                        logger.exception("Delivery to webhook %s failed", observer_id)
            finally:
                self._queue.task_done()
