"""Payment scheduler — one armed timer per payment intent.

Each timer is an asyncio task that sleeps until an absolute UTC instant
and then hands the intent to the renewal handler. Arming a timer for an
intent cancels whatever timer that intent already had. A timer removes
itself from the map the moment it fires, so re-arming or cancelling from
inside the renewal never cancels the running task.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chainpay.engine.models.base import utcnow
from chainpay.subscriptions.results import ScheduleResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from chainpay.engine.repository.intents import IntentRepository
    from chainpay.metrics.collector import EngineMetrics
    from chainpay.subscriptions.results import RenewalResult

    RenewalHandler = Callable[[str], Awaitable[RenewalResult]]

logger = logging.getLogger(__name__)

# Long waits are split so the wall clock is re-read periodically
_MAX_SLEEP = 3600.0


@dataclass(eq=False)
class _Job:
    intent_id: str
    run_at: datetime
    task: asyncio.Task[None] | None = field(default=None, repr=False)


class PaymentScheduler:
    """Keeps at most one live renewal timer per intent id.

    Usage::

        scheduler = PaymentScheduler(intents)
        scheduler.set_renewal_handler(renewal.process_renewal)
        await scheduler.schedule(intent.id, intent.next_payment_due)
        ...
        await scheduler.shutdown()
    """

    def __init__(
        self,
        intents: IntentRepository,
        *,
        metrics: EngineMetrics | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._intents = intents
        self._metrics = metrics
        self._now = now
        self._jobs: dict[str, _Job] = {}
        self._firing: dict[str, asyncio.Task[None]] = {}
        self._renewal: RenewalHandler | None = None

    def set_renewal_handler(self, handler: RenewalHandler) -> None:
        """Bind the coroutine invoked when a timer fires."""
        self._renewal = handler

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    async def schedule(self, intent_id: str, when: datetime) -> ScheduleResult:
        """Arm a one-shot timer for *intent_id* at *when*, replacing any existing one.

        A *when* in the past fires as soon as possible.

        Returns:
            ``ScheduleResult`` with ``reason="not_found"`` if the intent is gone.
        """
        self._drop(intent_id)
        intent = await self._intents.get(intent_id)
        # another schedule() may have armed a timer while we were reading
        self._drop(intent_id)
        if intent is None:
            logger.info("Not scheduling %s: payment intent not found", intent_id)
            return ScheduleResult(intent_id=intent_id, success=False, reason="not_found")

        job = _Job(intent_id=intent_id, run_at=when)
        job.task = asyncio.create_task(self._run(job), name=f"renewal:{intent_id}")
        self._jobs[intent_id] = job
        self._update_gauge()
        logger.info("Scheduled payment %s at %s", intent_id, when.isoformat())
        return ScheduleResult(intent_id=intent_id, success=True, run_at=when)

    def cancel(self, intent_id: str) -> bool:
        """Cancel the armed timer for *intent_id*. Returns True if one existed."""
        cancelled = self._drop(intent_id)
        if cancelled:
            logger.info("Cancelled scheduled payment %s", intent_id)
        return cancelled

    async def reschedule(self, intent_id: str) -> ScheduleResult:
        """Re-arm from the intent's stored ``next_payment_due``."""
        intent = await self._intents.get(intent_id)
        if intent is None or not intent.is_active:
            self.cancel(intent_id)
            return ScheduleResult(intent_id=intent_id, success=False, reason="not_found")
        return await self.schedule(intent_id, intent.next_payment_due)

    async def shutdown(self) -> None:
        """Cancel every armed timer and every renewal in flight."""
        tasks = [job.task for job in self._jobs.values() if job.task is not None]
        tasks.extend(self._firing.values())
        self._jobs.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._firing.clear()
        self._update_gauge()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def has_job(self, intent_id: str) -> bool:
        return intent_id in self._jobs

    def is_firing(self, intent_id: str) -> bool:
        """Whether a renewal for *intent_id* is running right now."""
        return intent_id in self._firing

    def scheduled_ids(self) -> list[str]:
        return list(self._jobs)

    @property
    def job_count(self) -> int:
        return len(self._jobs)

    def next_run(self, intent_id: str) -> datetime | None:
        job = self._jobs.get(intent_id)
        return job.run_at if job else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _drop(self, intent_id: str) -> bool:
        job = self._jobs.pop(intent_id, None)
        if job is None:
            return False
        if job.task is not None:
            job.task.cancel()
        self._update_gauge()
        return True

    async def _run(self, job: _Job) -> None:
        while True:
            delay = (job.run_at - self._now()).total_seconds()
            if delay <= 0:
                break
            await asyncio.sleep(min(delay, _MAX_SLEEP))

        if self._jobs.get(job.intent_id) is job:
            del self._jobs[job.intent_id]
            self._update_gauge()

        current = asyncio.current_task()
        if current is not None:
            self._firing[job.intent_id] = current
        try:
            await self._fire(job)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled payment %s failed", job.intent_id)
        finally:
            if self._firing.get(job.intent_id) is current:
                del self._firing[job.intent_id]

    async def _fire(self, job: _Job) -> None:
        intent = await self._intents.get(job.intent_id)
        if intent is None or not intent.is_active:
            logger.info("Dropping stale timer for %s", job.intent_id)
            return
        if self._renewal is None:
            logger.error("No renewal handler bound; payment %s not processed", job.intent_id)
            return

        result = await self._renewal(job.intent_id)
        if result.success and result.next_payment_due is not None:
            await self.schedule(job.intent_id, result.next_payment_due)
            return

        logger.info("Renewal for %s did not succeed; timer not re-armed", job.intent_id)
        if self._jobs.get(job.intent_id) is job:
            del self._jobs[job.intent_id]
            self._update_gauge()

    def _update_gauge(self) -> None:
        if self._metrics:
            self._metrics.set_scheduled_jobs(len(self._jobs))
