"""Receipt repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from chainpay.engine.models.receipt import Receipt
from chainpay.errors.definitions import DuplicateDigestError

if TYPE_CHECKING:
    from chainpay.datastore.client import Datastore


class ReceiptRepository:
    """Data access layer for receipts. Receipts are never deleted."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def create(self, receipt: Receipt) -> Receipt:
        """Persist a receipt.

        Raises:
            DuplicateDigestError: If a receipt already exists for the same digest.
        """
        async with self._ds.session() as session:
            session.add(receipt)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if receipt.transaction_digest:
                    raise DuplicateDigestError(receipt.transaction_digest) from exc
                raise
        return receipt

    async def get(self, receipt_id: str) -> Receipt | None:
        async with self._ds.session() as session:
            return await session.get(Receipt, receipt_id)

    async def find_many(
        self,
        *,
        intent_id: str | None = None,
        user_id: str | None = None,
        product_id: str | None = None,
    ) -> list[Receipt]:
        stmt = select(Receipt)
        if intent_id is not None:
            stmt = stmt.where(Receipt.intent_id == intent_id)
        if user_id is not None:
            stmt = stmt.where(Receipt.user_id == user_id)
        if product_id is not None:
            stmt = stmt.where(Receipt.product_id == product_id)
        async with self._ds.session() as session:
            result = await session.execute(stmt.order_by(Receipt.created_at))
            return list(result.scalars().all())
