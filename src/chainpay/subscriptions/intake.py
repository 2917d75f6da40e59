"""Payment intake — user-submitted payments, unsubscribes and cancellations."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from chainpay.engine.models.base import utcnow
from chainpay.engine.models.payment_intent import PaymentIntentStatus
from chainpay.engine.models.receipt import Receipt
from chainpay.errors.definitions import (
    DuplicateDigestError,
    ErrMissingTransaction,
    ErrNoEvents,
    ErrNoReceiptEvent,
    ErrNoUnsubscribeEvent,
    ErrProductNotFound,
    ErrSubscriptionNotFound,
    ErrUserNotFound,
    InvalidTransactionError,
    SubscriptionExistsError,
)
from chainpay.ledger.models import INTENT_CREATION_EVENT, INTENT_DELETE_EVENT, PAYMENT_RECEIPT_EVENT
from chainpay.notifications.events import EventName, PaymentEvent
from chainpay.subscriptions.results import PaymentOutcome

if TYPE_CHECKING:
    from chainpay.engine.models.payment_intent import PaymentIntent
    from chainpay.engine.models.product import Product
    from chainpay.engine.models.user import User
    from chainpay.engine.repository import Repositories
    from chainpay.ledger.gateway import LedgerGateway
    from chainpay.ledger.models import EventPage, LedgerEvent
    from chainpay.notifications.service import Notifier
    from chainpay.subscriptions.results import UnsubscribeResult
    from chainpay.subscriptions.scheduler import PaymentScheduler
    from chainpay.subscriptions.unsubscribe import UnsubscribeHandler

logger = logging.getLogger(__name__)


def _parse_int(value: Any, event_type: str, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        msg = f"{event_type} field {field!r} is not an integer: {value!r}"
        raise InvalidTransactionError(msg) from exc


def _parse_millis(value: Any, event_type: str, field: str) -> datetime:
    millis = _parse_int(value, event_type, field)
    try:
        return datetime.fromtimestamp(millis / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        msg = f"{event_type} field {field!r} is not a valid timestamp: {value!r}"
        raise InvalidTransactionError(msg) from exc


def _parse_creation(page: EventPage) -> tuple[str, datetime]:
    """Intent id and first payment time of the intent a subscription payment created."""
    creation: LedgerEvent | None = page.find(INTENT_CREATION_EVENT)
    if creation is None:
        msg = "subscription payment emitted no payment intent creation event"
        raise InvalidTransactionError(msg)
    data = creation.parsed_json
    for field in ("intentId", "lastPaidOn"):
        if data.get(field) in (None, ""):
            msg = f"{INTENT_CREATION_EVENT} is missing {field!r}"
            raise InvalidTransactionError(msg)
    return str(data["intentId"]), _parse_millis(data["lastPaidOn"], INTENT_CREATION_EVENT, "lastPaidOn")


class PaymentIntake:
    """Accepts client-signed payment and unsubscribe transactions.

    Usage::

        intake = PaymentIntake(repos, gateway, notifier, scheduler, unsubscribe)
        outcome = await intake.process_payment(tx_bytes, signature, user_id)
    """

    def __init__(
        self,
        repos: Repositories,
        gateway: LedgerGateway,
        notifier: Notifier,
        scheduler: PaymentScheduler,
        unsubscribe: UnsubscribeHandler,
    ) -> None:
        self._repos = repos
        self._gateway = gateway
        self._notifier = notifier
        self._scheduler = scheduler
        self._unsubscribe = unsubscribe

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def process_payment(self, tx_bytes: str, signature: str, user_id: str) -> PaymentOutcome:
        """Execute a signed payment and record its receipt.

        Subscription payments also create the payment intent and arm the
        timer for the next renewal.

        Raises:
            SubscriptionExistsError: The user already has an active
                subscription for the product.
            DuplicateDigestError: The transaction was already processed.
            InvalidTransactionError: No payment receipt event was emitted, or
                an event is malformed. Nothing is stored in that case.
            NotFoundError: Unknown product or payer.
            LedgerError: The ledger rejected the transaction.
        """
        if not tx_bytes or not signature:
            raise ErrMissingTransaction

        await self._check_existing_subscription(tx_bytes, user_id)

        digest = await self._gateway.submit(tx_bytes, signature)
        if await self._repos.digests.exists(digest):
            raise DuplicateDigestError(digest)

        page = await self._gateway.query_events(digest)
        if not page.data:
            raise ErrNoEvents
        receipt_event = page.find(PAYMENT_RECEIPT_EVENT)
        if receipt_event is None:
            raise ErrNoReceiptEvent

        data = receipt_event.parsed_json
        product = await self._repos.products.get(str(data.get("productId", "")))
        if product is None:
            raise ErrProductNotFound
        owner = str(data.get("owner", ""))
        user = await self._repos.users.resolve(owner)
        if user is None:
            raise ErrUserNotFound

        # everything is parsed before the first write
        receipt = Receipt(
            product_id=product.id,
            user_id=user.id,
            owner=owner,
            ref_id=str(data.get("ref_id", "")),
            amount=_parse_int(data.get("amount", 0), PAYMENT_RECEIPT_EVENT, "amount"),
            transaction_digest=digest,
            created_at=utcnow(),
        )
        paid_on = (
            _parse_millis(data["paidon"], PAYMENT_RECEIPT_EVENT, "paidon")
            if data.get("paidon")
            else receipt.created_at
        )

        if not product.is_subscription:
            receipt = await self._repos.receipts.create(receipt)
            await self._notifier.notify_product(product.id, self._success(product, user, receipt, paid_on))
            logger.info("One-time payment %s recorded as receipt %s", digest, receipt.id)
            return PaymentOutcome(receipt_id=receipt.id, transaction_digest=digest, product_id=product.id)

        intent_id, last_paid_on = _parse_creation(page)
        next_due = last_paid_on + product.period
        intent = await self._repos.intents.open_subscription(
            intent_id,
            update={
                "last_paid_on": last_paid_on,
                "next_payment_due": next_due,
                "status": PaymentIntentStatus.ACTIVE,
            },
            create={
                "user_id": user.id,
                "product_id": product.id,
                "last_paid_on": last_paid_on,
                "next_payment_due": next_due,
                "ref_id": receipt.ref_id,
                "status": PaymentIntentStatus.ACTIVE,
            },
            receipt=receipt,
        )
        await self._notifier.notify_product(product.id, self._success(product, user, receipt, paid_on))
        await self._scheduler.schedule(intent.id, intent.next_payment_due)
        logger.info("Subscription %s started; next payment due %s", intent.id, intent.next_payment_due)
        return PaymentOutcome(
            receipt_id=receipt.id,
            transaction_digest=digest,
            product_id=product.id,
            subscription=True,
            payment_intent_id=intent.id,
            next_payment_due=intent.next_payment_due,
        )

    @staticmethod
    def _success(product: Product, user: User, receipt: Receipt, paid_on: datetime) -> PaymentEvent:
        return PaymentEvent(
            event=EventName.PAYMENT_SUCCESS,
            product_id=product.id,
            ref_id=receipt.ref_id,
            amount=receipt.amount,
            paid_on=paid_on,
            user_id=user.id,
            user_wallet=user.wallet,
            receipt_id=receipt.id,
        )

    async def _check_existing_subscription(self, tx_bytes: str, user_id: str) -> None:
        preview = await self._gateway.dry_run(tx_bytes)
        event = preview.find_event(PAYMENT_RECEIPT_EVENT)
        if event is None:
            return
        product_id = str(event.parsed_json.get("productId", ""))
        product = await self._repos.products.get(product_id)
        if product is None or not product.is_subscription:
            return
        existing = await self._repos.intents.find_first(
            status=PaymentIntentStatus.ACTIVE, user_id=user_id, product_id=product_id
        )
        if existing is not None:
            raise SubscriptionExistsError(product_id)

    # ------------------------------------------------------------------
    # Unsubscribe / cancel
    # ------------------------------------------------------------------

    async def process_unsubscribe(self, tx_bytes: str, signature: str) -> UnsubscribeResult:
        """Execute a user-signed ``unsubscribeFromProduct`` and clean up.

        Raises:
            InvalidTransactionError: No payment intent delete event was emitted.
        """
        if not tx_bytes or not signature:
            raise ErrMissingTransaction

        digest = await self._gateway.submit(tx_bytes, signature)
        page = await self._gateway.query_events(digest)
        event = page.find(INTENT_DELETE_EVENT)
        if event is None or "intentId" not in event.parsed_json:
            raise ErrNoUnsubscribeEvent

        intent_id = str(event.parsed_json["intentId"])
        result = await self._unsubscribe.handle_unsubscribe(
            intent_id, notify=True, reason=EventName.UNSUBSCRIBED, skip_ledger=True
        )
        return result

    async def cancel_subscription(self, intent_id: str, user_id: str) -> UnsubscribeResult:
        """Cancel *intent_id* on behalf of its owner.

        Raises:
            NotFoundError: The intent does not exist or belongs to someone else.
        """
        intent = await self._repos.intents.get(intent_id)
        if intent is None or intent.user_id != user_id:
            raise ErrSubscriptionNotFound
        return await self._unsubscribe.handle_unsubscribe(intent_id, notify=True)

    async def list_subscriptions(self, user_id: str) -> list[PaymentIntent]:
        """Active subscriptions of *user_id*, with their products."""
        return await self._repos.intents.find_many(status=PaymentIntentStatus.ACTIVE, user_id=user_id)
