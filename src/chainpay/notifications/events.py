"""Event payloads delivered to product webhooks.

Every payload carries ``productId``, ``ref_id``, ``event``, ``amount``
(string-encoded MIST), ``paidOn`` (ISO-8601), ``userId``, ``userWallet``
and ``currency``; ``payment_success`` payloads add ``receiptId``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from chainpay.engine.models.payment_intent import PaymentIntent

DEFAULT_CURRENCY = "MIST"


class EventName(enum.StrEnum):
    """Notification event names."""

    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    UNSUBSCRIBED = "unsubscribed"


@dataclass(frozen=True)
class PaymentEvent:
    """A payment outcome for one (product, user) pair."""

    event: str
    product_id: str
    ref_id: str
    amount: int
    paid_on: datetime
    user_id: str
    user_wallet: str
    receipt_id: str | None = None
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def for_intent(
        cls,
        event: str,
        intent: PaymentIntent,
        *,
        paid_on: datetime | None = None,
        receipt_id: str | None = None,
    ) -> PaymentEvent:
        """Build an event from a loaded intent (product and user attached).

        ``paid_on`` defaults to the intent's ``last_paid_on``.
        """
        return cls(
            event=event,
            product_id=intent.product_id,
            ref_id=intent.ref_id,
            amount=intent.product.price,
            paid_on=paid_on or intent.last_paid_on,
            user_id=intent.user_id,
            user_wallet=intent.user.wallet,
            receipt_id=receipt_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the webhook JSON shape."""
        data: dict[str, Any] = {
            "productId": self.product_id,
            "ref_id": self.ref_id,
            "event": str(self.event),
            "amount": str(self.amount),
            "paidOn": self.paid_on.isoformat(),
            "userId": self.user_id,
            "userWallet": self.user_wallet,
            "currency": self.currency,
        }
        if self.receipt_id is not None:
            data["receiptId"] = self.receipt_id
        return data
