"""Subscriptions — recurring payment scheduling and settlement.

Provides:
- ``PaymentScheduler`` — one armed renewal timer per payment intent
- ``RenewalEngine`` — executes a scheduled payment on the ledger
- ``UnsubscribeHandler`` — idempotent cleanup of a subscription
- ``Bootstrapper`` — restores timers at start-up
- ``PaymentIntake`` — user-submitted payments and cancellations
"""

from __future__ import annotations

from chainpay.subscriptions.bootstrap import Bootstrapper
from chainpay.subscriptions.intake import PaymentIntake
from chainpay.subscriptions.renewal import RenewalEngine
from chainpay.subscriptions.results import (
    BootstrapReport,
    PaymentOutcome,
    RenewalResult,
    ScheduleResult,
    UnsubscribeResult,
)
from chainpay.subscriptions.scheduler import PaymentScheduler
from chainpay.subscriptions.unsubscribe import UnsubscribeHandler

__all__ = [
    "BootstrapReport",
    "Bootstrapper",
    "PaymentIntake",
    "PaymentOutcome",
    "PaymentScheduler",
    "RenewalEngine",
    "RenewalResult",
    "ScheduleResult",
    "UnsubscribeHandler",
    "UnsubscribeResult",
]
