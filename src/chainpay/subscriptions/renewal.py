"""Renewal engine — executes one scheduled recurring payment.

Per intent the state machine is ``ACTIVE -> RENEWED -> ACTIVE`` on
success and ``ACTIVE -> FAILED`` (record deleted) on any failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chainpay.engine.models.base import utcnow
from chainpay.engine.models.receipt import Receipt
from chainpay.errors.definitions import ConfirmationMissingError, ErrMerchantNotFound
from chainpay.ledger.models import PAYMENT_RECEIPT_EVENT
from chainpay.notifications.events import EventName, PaymentEvent
from chainpay.subscriptions.results import RenewalResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from chainpay.engine.models.payment_intent import PaymentIntent
    from chainpay.engine.repository import Repositories
    from chainpay.ledger.gateway import LedgerGateway
    from chainpay.metrics.collector import EngineMetrics
    from chainpay.notifications.service import Notifier
    from chainpay.subscriptions.unsubscribe import UnsubscribeHandler

logger = logging.getLogger(__name__)


class RenewalEngine:
    """Collects the next payment of an active subscription.

    Usage::

        engine = RenewalEngine(repos, gateway, notifier, unsubscribe)
        result = await engine.process_renewal(intent_id)
        if result.success:
            await scheduler.schedule(intent_id, result.next_payment_due)
    """

    def __init__(
        self,
        repos: Repositories,
        gateway: LedgerGateway,
        notifier: Notifier,
        unsubscribe: UnsubscribeHandler,
        *,
        clock_object_id: str = "0x6",
        metrics: EngineMetrics | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repos = repos
        self._gateway = gateway
        self._notifier = notifier
        self._unsubscribe = unsubscribe
        self._clock_object_id = clock_object_id
        self._metrics = metrics
        self._now = now

    async def process_renewal(self, intent_id: str) -> RenewalResult:
        """Settle the next payment for *intent_id*.

        Never raises. On failure the product's webhooks receive
        ``payment_failed`` followed by ``unsubscribed`` and the intent is
        removed.
        """
        intent = await self._load(intent_id)
        if intent is None or not intent.is_active:
            logger.info("Skipping renewal of %s: not active", intent_id)
            return RenewalResult.inactive(intent_id)

        if self._metrics:
            with self._metrics.track_renewal():
                result = await self._renew(intent)
        else:
            result = await self._renew(intent)

        if self._metrics:
            self._metrics.inc_renewal("success" if result.success else "failed")
        return result

    async def _load(self, intent_id: str) -> PaymentIntent | None:
        try:
            return await self._repos.intents.get(intent_id)
        except Exception:
            logger.exception("Could not load payment intent %s", intent_id)
            return None

    async def _renew(self, intent: PaymentIntent) -> RenewalResult:
        try:
            digest, receipt, next_due, advanced = await self._settle(intent)
        except Exception as exc:
            logger.warning("Renewal of %s failed: %s", intent.id, exc)
            if not await self._still_active(intent.id):
                logger.info("Payment intent %s was removed during its renewal; nothing to clean up", intent.id)
                return RenewalResult(intent_id=intent.id, success=False, not_active=True, error=str(exc))
            await self._fail(intent)
            return RenewalResult(intent_id=intent.id, success=False, error=str(exc))

        if not advanced:
            logger.warning(
                "Payment intent %s was removed while %s settled; receipt %s kept unlinked",
                intent.id,
                digest,
                receipt.id,
            )
            return RenewalResult.inactive(intent.id, transaction_digest=digest, receipt_id=receipt.id)

        await self._notifier.notify_product(
            intent.product_id,
            PaymentEvent.for_intent(
                EventName.PAYMENT_SUCCESS,
                intent,
                paid_on=receipt.created_at,
                receipt_id=receipt.id,
            ),
        )
        logger.info("Renewed %s; next payment due %s", intent.id, next_due.isoformat())
        return RenewalResult(
            intent_id=intent.id,
            success=True,
            next_payment_due=next_due,
            transaction_digest=digest,
            receipt_id=receipt.id,
        )

    async def _still_active(self, intent_id: str) -> bool:
        try:
            current = await self._repos.intents.get(intent_id)
        except Exception:
            logger.exception("Could not re-read payment intent %s", intent_id)
            # cleanup is idempotent, so assume it is still there
            return True
        return current is not None and current.is_active

    async def _settle(self, intent: PaymentIntent) -> tuple[str, Receipt, datetime, bool]:
        product = intent.product
        merchant = product.merchant
        if merchant is None:
            raise ErrMerchantNotFound

        digest = await self._gateway.execute_move_call(
            self._gateway.target("makePaymentFromIntent"),
            [
                product.id,
                intent.id,
                intent.user.wallet,
                merchant.wallet,
                product.subscribers_registry,
                self._clock_object_id,
            ],
        )
        page = await self._gateway.query_events(digest)
        event = page.find(PAYMENT_RECEIPT_EVENT)
        if event is None:
            raise ConfirmationMissingError(PAYMENT_RECEIPT_EVENT, digest)

        paid_on = self._now()
        next_due = paid_on + product.period
        receipt = Receipt(
            product_id=product.id,
            user_id=intent.user_id,
            owner=str(event.parsed_json.get("owner") or intent.user.wallet),
            ref_id=intent.ref_id,
            amount=int(event.parsed_json.get("amount", product.price)),
            created_at=paid_on,
        )
        advanced = await self._repos.intents.record_renewal(
            intent.id,
            last_paid_on=paid_on,
            next_payment_due=next_due,
            digest=digest,
            receipt=receipt,
        )
        return digest, receipt, next_due, advanced

    async def _fail(self, intent: PaymentIntent) -> None:
        await self._notifier.notify_product(
            intent.product_id,
            PaymentEvent.for_intent(EventName.PAYMENT_FAILED, intent),
        )
        cleanup = await self._unsubscribe.handle_unsubscribe(
            intent.id, notify=True, reason=EventName.UNSUBSCRIBED
        )
        if not cleanup.success:
            logger.error("Cleanup after failed renewal of %s failed: %s", intent.id, cleanup.error)
