"""Bootstrapper — rebuilds the in-memory timers at process start."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chainpay.engine.models.base import utcnow
from chainpay.engine.models.payment_intent import PaymentIntentStatus
from chainpay.subscriptions.results import BootstrapReport

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from chainpay.engine.models.payment_intent import PaymentIntent
    from chainpay.engine.repository.intents import IntentRepository
    from chainpay.subscriptions.renewal import RenewalEngine
    from chainpay.subscriptions.scheduler import PaymentScheduler

logger = logging.getLogger(__name__)


class Bootstrapper:
    """Catches up overdue renewals and arms a timer for every active intent."""

    def __init__(
        self,
        intents: IntentRepository,
        scheduler: PaymentScheduler,
        renewal: RenewalEngine,
        *,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._intents = intents
        self._scheduler = scheduler
        self._renewal = renewal
        self._now = now

    async def run(self) -> BootstrapReport:
        """Process every ACTIVE intent; one failing intent never stops the rest."""
        intents = await self._intents.find_many(status=PaymentIntentStatus.ACTIVE)
        report = BootstrapReport(total=len(intents))
        now = self._now()

        for intent in intents:
            try:
                await self._restore(intent, now, report)
            except Exception:
                logger.exception("Bootstrap of payment intent %s failed", intent.id)
                report.failed += 1

        logger.info(
            "Bootstrap complete: %d active, %d scheduled, %d renewed, %d failed",
            report.total,
            report.scheduled,
            report.renewed,
            report.failed,
        )
        return report

    async def _restore(self, intent: PaymentIntent, now: datetime, report: BootstrapReport) -> None:
        if intent.next_payment_due > now:
            scheduled = await self._scheduler.schedule(intent.id, intent.next_payment_due)
            if scheduled.success:
                report.scheduled += 1
            return

        logger.info("Payment intent %s is overdue (due %s), renewing now", intent.id, intent.next_payment_due)
        result = await self._renewal.process_renewal(intent.id)
        if not result.success:
            report.failed += 1
            return
        report.renewed += 1
        if result.next_payment_due is not None:
            scheduled = await self._scheduler.schedule(intent.id, result.next_payment_due)
            if scheduled.success:
                report.scheduled += 1
