"""Payment intent repository."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from chainpay.engine.models.payment_intent import PaymentIntent, PaymentIntentStatus
from chainpay.engine.models.receipt import Receipt
from chainpay.engine.models.transaction_digest import TransactionDigest
from chainpay.errors.definitions import DuplicateDigestError

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.sql import Select

    from chainpay.datastore.client import Datastore


def _filtered(
    stmt: Select[Any],
    *,
    status: PaymentIntentStatus | None,
    due_before: datetime | None,
    user_id: str | None,
    product_id: str | None,
) -> Select[Any]:
    if status is not None:
        stmt = stmt.where(PaymentIntent.status == status)
    if due_before is not None:
        stmt = stmt.where(PaymentIntent.next_payment_due < due_before)
    if user_id is not None:
        stmt = stmt.where(PaymentIntent.user_id == user_id)
    if product_id is not None:
        stmt = stmt.where(PaymentIntent.product_id == product_id)
    return stmt


class IntentRepository:
    """Data access layer for payment intents.

    Every method opens its own short-lived session, so callers always
    observe the latest committed state.
    """

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get(self, intent_id: str) -> PaymentIntent | None:
        """Find an intent by id (product, merchant and user eagerly loaded)."""
        async with self._ds.session() as session:
            return await session.get(PaymentIntent, intent_id)

    async def find_many(
        self,
        *,
        status: PaymentIntentStatus | None = None,
        due_before: datetime | None = None,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> list[PaymentIntent]:
        """List intents matching every given filter, oldest due first."""
        stmt = _filtered(
            select(PaymentIntent),
            status=status,
            due_before=due_before,
            user_id=user_id,
            product_id=product_id,
        ).order_by(PaymentIntent.next_payment_due)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def find_first(
        self,
        *,
        status: PaymentIntentStatus | None = None,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> PaymentIntent | None:
        stmt = _filtered(
            select(PaymentIntent),
            status=status,
            due_before=None,
            user_id=user_id,
            product_id=product_id,
        ).limit(1)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def create(self, intent: PaymentIntent) -> PaymentIntent:
        """Persist a new intent."""
        async with self._ds.session() as session:
            session.add(intent)
            await session.commit()
        return intent

    async def update(self, intent_id: str, **values: Any) -> PaymentIntent | None:
        """Apply column updates; returns the updated intent or None if missing."""
        async with self._ds.session() as session:
            intent = await session.get(PaymentIntent, intent_id)
            if intent is None:
                return None
            for key, value in values.items():
                setattr(intent, key, value)
            await session.commit()
            return intent

    async def upsert(
        self,
        intent_id: str,
        *,
        update: dict[str, Any],
        create: dict[str, Any],
    ) -> PaymentIntent:
        """Update the intent if it exists, otherwise create it from *create*."""
        async with self._ds.session() as session:
            intent = await session.get(PaymentIntent, intent_id)
            if intent is None:
                intent = PaymentIntent(id=intent_id, **create)
                session.add(intent)
            else:
                for key, value in update.items():
                    setattr(intent, key, value)
            await session.commit()
            return intent

    async def delete(self, intent_id: str) -> bool:
        """Delete an intent row. Returns True if deleted."""
        async with self._ds.session() as session:
            result = await session.execute(delete(PaymentIntent).where(PaymentIntent.id == intent_id))
            await session.commit()
            return result.rowcount > 0  # type: ignore[union-attr]

    async def delete_many(
        self,
        *,
        status: PaymentIntentStatus | None = None,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> int:
        """Delete every intent (and its digests) matching the filters."""
        ids_stmt = _filtered(
            select(PaymentIntent.id),
            status=status,
            due_before=None,
            user_id=user_id,
            product_id=product_id,
        )
        async with self._ds.transaction() as session:
            ids = list((await session.execute(ids_stmt)).scalars().all())
            if not ids:
                return 0
            await session.execute(
                delete(TransactionDigest).where(TransactionDigest.payment_intent_id.in_(ids))
            )
            result = await session.execute(delete(PaymentIntent).where(PaymentIntent.id.in_(ids)))
            return result.rowcount  # type: ignore[union-attr]

    async def delete_with_digests(self, intent_id: str) -> bool:
        """Delete an intent and all its transaction digests in one transaction.

        Returns True if the intent row existed.
        """
        async with self._ds.transaction() as session:
            await session.execute(
                delete(TransactionDigest).where(TransactionDigest.payment_intent_id == intent_id)
            )
            result = await session.execute(delete(PaymentIntent).where(PaymentIntent.id == intent_id))
            return result.rowcount > 0  # type: ignore[union-attr]

    async def record_renewal(
        self,
        intent_id: str,
        *,
        last_paid_on: datetime,
        next_payment_due: datetime,
        digest: str,
        receipt: Receipt,
    ) -> bool:
        """Advance the billing dates, store the digest and the receipt atomically.

        A settled payment always leaves its receipt. If the intent was
        deleted meanwhile the receipt is stored unlinked, and no digest row
        is written.

        Returns:
            True if the intent was advanced, False if it no longer exists.
        """
        receipt.transaction_digest = digest
        async with self._ds.transaction() as session:
            intent = await session.get(PaymentIntent, intent_id)
            if intent is None:
                receipt.intent_id = None
                session.add(receipt)
                return False
            intent.last_paid_on = last_paid_on
            intent.next_payment_due = next_payment_due
            session.add(TransactionDigest(digest=digest, payment_intent_id=intent_id))
            receipt.intent_id = intent_id
            session.add(receipt)
        return True

    async def open_subscription(
        self,
        intent_id: str,
        *,
        update: dict[str, Any],
        create: dict[str, Any],
        receipt: Receipt,
    ) -> PaymentIntent:
        """Upsert the intent, record the opening digest and store the linked receipt atomically.

        Raises:
            DuplicateDigestError: If the receipt's digest was already recorded.
        """
        digest = receipt.transaction_digest or ""
        try:
            async with self._ds.transaction() as session:
                intent = await session.get(PaymentIntent, intent_id)
                if intent is None:
                    intent = PaymentIntent(id=intent_id, **create)
                    session.add(intent)
                else:
                    for key, value in update.items():
                        setattr(intent, key, value)
                # the intent row must exist before rows that reference it
                await session.flush()
                session.add(TransactionDigest(digest=digest, payment_intent_id=intent_id))
                receipt.intent_id = intent_id
                session.add(receipt)
        except IntegrityError as exc:
            raise DuplicateDigestError(digest) from exc
        return intent
