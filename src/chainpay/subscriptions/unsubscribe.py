"""Unsubscribe / cleanup — the single path that ends a subscription.

Used by user-initiated unsubscribes, manual cancellation and failed
renewals. The database cleanup is authoritative; the on-chain
``unsubscribeFromProduct`` call is best effort.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chainpay.ledger.models import INTENT_DELETE_EVENT
from chainpay.notifications.events import EventName, PaymentEvent
from chainpay.subscriptions.results import UnsubscribeResult

if TYPE_CHECKING:
    from chainpay.engine.models.payment_intent import PaymentIntent
    from chainpay.engine.repository import Repositories
    from chainpay.ledger.gateway import LedgerGateway
    from chainpay.notifications.service import Notifier
    from chainpay.subscriptions.scheduler import PaymentScheduler

logger = logging.getLogger(__name__)


class UnsubscribeHandler:
    """Removes a payment intent, its digests and its timer.

    Usage::

        handler = UnsubscribeHandler(repos, gateway, notifier, scheduler)
        result = await handler.handle_unsubscribe(intent_id)
    """

    def __init__(
        self,
        repos: Repositories,
        gateway: LedgerGateway,
        notifier: Notifier,
        scheduler: PaymentScheduler,
        *,
        active_subscription_registry: str = "",
    ) -> None:
        self._repos = repos
        self._gateway = gateway
        self._notifier = notifier
        self._scheduler = scheduler
        self._registry = active_subscription_registry

    async def handle_unsubscribe(
        self,
        intent_id: str,
        *,
        notify: bool = True,
        reason: str = EventName.UNSUBSCRIBED,
        skip_ledger: bool = False,
    ) -> UnsubscribeResult:
        """End the subscription held by *intent_id*.

        Idempotent: a missing intent is a successful no-op.

        Args:
            intent_id: Payment intent to remove.
            notify: Send a *reason* event to the product's webhooks.
            reason: Event name for the notification.
            skip_ledger: Do not call ``unsubscribeFromProduct`` (the user
                already executed it).

        Returns:
            ``UnsubscribeResult``; ``success`` is False only when the
            database cleanup failed.
        """
        try:
            intent = await self._repos.intents.get(intent_id)
        except Exception as exc:
            logger.exception("Could not load payment intent %s for unsubscribe", intent_id)
            return UnsubscribeResult(intent_id=intent_id, success=False, error=str(exc))

        if intent is None:
            self._scheduler.cancel(intent_id)
            logger.info("Unsubscribe %s: already gone", intent_id)
            return UnsubscribeResult(intent_id=intent_id, success=True, noop=True)

        # captured before anything is deleted
        event = PaymentEvent.for_intent(reason, intent)

        ledger_success = False
        digest: str | None = None
        if intent.is_active and not skip_ledger:
            ledger_success, digest = await self._unsubscribe_on_chain(intent)

        if notify:
            await self._notifier.notify_product(intent.product_id, event)

        try:
            await self._repos.intents.delete_with_digests(intent_id)
        except Exception as exc:
            logger.exception("Could not delete payment intent %s", intent_id)
            return UnsubscribeResult(
                intent_id=intent_id,
                success=False,
                ledger_success=ledger_success,
                transaction_digest=digest,
                error=str(exc),
            )

        self._scheduler.cancel(intent_id)
        logger.info("Unsubscribed %s (%s)", intent_id, reason)
        return UnsubscribeResult(
            intent_id=intent_id,
            success=True,
            ledger_success=ledger_success,
            transaction_digest=digest,
        )

    async def _unsubscribe_on_chain(self, intent: PaymentIntent) -> tuple[bool, str | None]:
        product = intent.product
        digest: str | None = None
        try:
            digest = await self._gateway.execute_move_call(
                self._gateway.target("unsubscribeFromProduct"),
                [product.id, intent.id, product.subscribers_registry, self._registry],
            )
            page = await self._gateway.query_events(digest)
        except Exception:
            logger.exception("On-chain unsubscribe failed for %s", intent.id)
            return False, digest

        if page.find(INTENT_DELETE_EVENT) is None:
            logger.warning("Unsubscribe transaction %s emitted no delete event", digest)
            return False, digest
        return True, digest
