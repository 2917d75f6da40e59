"""Read-only lookups for products, users and webhooks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from chainpay.engine.models.product import Product
from chainpay.engine.models.user import User
from chainpay.engine.models.webhook import Webhook

if TYPE_CHECKING:
    from chainpay.datastore.client import Datastore


class ProductRepository:
    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get(self, product_id: str) -> Product | None:
        """Find a product by on-chain id (merchant eagerly loaded)."""
        async with self._ds.session() as session:
            return await session.get(Product, product_id)


class UserRepository:
    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def get(self, user_id: str) -> User | None:
        async with self._ds.session() as session:
            return await session.get(User, user_id)

    async def resolve(self, owner: str) -> User | None:
        """Find a user by id or by wallet address."""
        stmt = select(User).where(or_(User.id == owner, User.wallet == owner)).limit(1)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return result.scalars().first()


class WebhookRepository:
    def __init__(self, datastore: Datastore) -> None:
        self._ds = datastore

    async def ids_for_product(self, product_id: str) -> list[str]:
        """Return the ids of every webhook observing *product_id*."""
        stmt = select(Webhook.id).where(Webhook.product_id == product_id)
        async with self._ds.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get(self, webhook_id: str) -> Webhook | None:
        async with self._ds.session() as session:
            return await session.get(Webhook, webhook_id)
