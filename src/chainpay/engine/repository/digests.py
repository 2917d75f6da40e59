"""Transaction digest repository — duplicate submission detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, exists, or_, select

from chainpay.engine.models.receipt import Receipt
from chainpay.engine.models.transaction_digest import TransactionDigest

if TYPE_CHECKING:
    from chainpay.datastore.client import Datastore


class DigestRepository:
    """Data access layer for transaction digests."""

    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def exists(self, digest: str) -> bool:
        """Whether *digest* has already been recorded (for an intent or a receipt)."""
        stmt = select(
            or_(
                exists().where(TransactionDigest.digest == digest),
                exists().where(Receipt.transaction_digest == digest),
            )
        )
        async with self._ds.session() as session:
            return bool((await session.execute(stmt)).scalar())

    async def create(self, digest: str, intent_id: str) -> TransactionDigest:
        record = TransactionDigest(digest=digest, payment_intent_id=intent_id)
        async with self._ds.session() as session:
            session.add(record)
            await session.commit()
        return record

    async def find_many(self, intent_id: str) -> list[TransactionDigest]:
        stmt = (
            select(TransactionDigest)
            .where(TransactionDigest.payment_intent_id == intent_id)
            .order_by(TransactionDigest.id)
        )
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete_many(self, intent_id: str) -> int:
        async with self._ds.session() as session:
            result = await session.execute(
                delete(TransactionDigest).where(TransactionDigest.payment_intent_id == intent_id)
            )
            await session.commit()
            return result.rowcount  # type: ignore[union-attr]
