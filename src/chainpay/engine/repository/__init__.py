"""Subscription store — repositories over the async datastore."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chainpay.engine.repository.catalog import ProductRepository, UserRepository, WebhookRepository
from chainpay.engine.repository.digests import DigestRepository
from chainpay.engine.repository.intents import IntentRepository
from chainpay.engine.repository.receipts import ReceiptRepository

if TYPE_CHECKING:
    from chainpay.datastore.client import Datastore


@dataclass(frozen=True)
class Repositories:
    """All repositories bound to one datastore."""

    intents: IntentRepository
    digests: DigestRepository
    receipts: ReceiptRepository
    products: ProductRepository
    users: UserRepository
    webhooks: WebhookRepository

    @classmethod
    def from_datastore(cls, datastore: Datastore) -> Repositories:
        return cls(
            intents=IntentRepository(datastore),
            digests=DigestRepository(datastore),
            receipts=ReceiptRepository(datastore),
            products=ProductRepository(datastore),
            users=UserRepository(datastore),
            webhooks=WebhookRepository(datastore),
        )


__all__ = [
    "DigestRepository",
    "IntentRepository",
    "ProductRepository",
    "ReceiptRepository",
    "Repositories",
    "UserRepository",
    "WebhookRepository",
]
