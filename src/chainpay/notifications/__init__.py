"""Notifications — payment event emission and webhook dispatch.

Provides:
- ``Notifier`` — non-blocking queue hand-off to a delivery worker
- ``WebhookDeliverer`` — signed single-attempt HTTP delivery
- ``PaymentEvent`` / ``EventName`` — payload types
"""

from __future__ import annotations

from chainpay.notifications.events import EventName, PaymentEvent
from chainpay.notifications.service import Notifier
from chainpay.notifications.webhook import SIGNATURE_HEADER, WebhookDeliverer, sign_payload

__all__ = [
    "SIGNATURE_HEADER",
    "EventName",
    "Notifier",
    "PaymentEvent",
    "WebhookDeliverer",
    "sign_payload",
]
