"""Background task definitions — cron job handlers.

- ``overdue_sweep`` (60 s) re-arms overdue ACTIVE intents that lost their timer
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chainpay.engine.models.base import utcnow
from chainpay.engine.models.payment_intent import PaymentIntentStatus

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from chainpay.engine.repository.intents import IntentRepository
    from chainpay.subscriptions.scheduler import PaymentScheduler

logger = logging.getLogger(__name__)

OVERDUE_SWEEP_PERIOD = 60


async def task_overdue_sweep(
    intents: IntentRepository,
    scheduler: PaymentScheduler,
    *,
    now: Callable[[], datetime] = utcnow,
) -> int:
    """Schedule every overdue ACTIVE intent that has no timer to fire now.

    Returns:
        Number of timers armed.
    """
    current = now()
    overdue = await intents.find_many(status=PaymentIntentStatus.ACTIVE, due_before=current)
    armed = 0
    for intent in overdue:
        if scheduler.has_job(intent.id) or scheduler.is_firing(intent.id):
            continue
        result = await scheduler.schedule(intent.id, current)
        if result.success:
            armed += 1
    if armed:
        logger.info("Overdue sweep armed %d payment timers", armed)
    return armed
