"""Result types returned by the subscription components."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RenewalResult:
    """Outcome of one scheduled renewal.

    ``next_payment_due`` is set only on success; the scheduler re-arms from it.
    """

    intent_id: str
    success: bool
    next_payment_due: datetime | None = None
    transaction_digest: str | None = None
    receipt_id: str | None = None
    not_active: bool = False
    error: str | None = None

    @classmethod
    def inactive(cls, intent_id: str, **settled: str) -> RenewalResult:
        return cls(
            intent_id=intent_id,
            success=False,
            not_active=True,
            error="payment intent is not active",
            **settled,
        )


@dataclass(frozen=True)
class UnsubscribeResult:
    """Outcome of an unsubscribe / cleanup.

    ``success`` reflects the database cleanup; ``ledger_success`` is
    informational only.
    """

    intent_id: str
    success: bool
    noop: bool = False
    ledger_success: bool = False
    transaction_digest: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ScheduleResult:
    intent_id: str
    success: bool
    run_at: datetime | None = None
    reason: str | None = None


@dataclass
class BootstrapReport:
    """Counters collected while re-arming timers at start-up."""

    total: int = 0
    scheduled: int = 0
    renewed: int = 0
    failed: int = 0


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of an accepted payment submission."""

    receipt_id: str
    transaction_digest: str
    product_id: str
    subscription: bool = False
    payment_intent_id: str | None = None
    next_payment_due: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.next_payment_due is not None:
            data["next_payment_due"] = self.next_payment_due.isoformat()
        return data
