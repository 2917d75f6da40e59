"""Engine data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for table creation.
"""

from chainpay.engine.models.base import Base, TimestampMixin, UTCDateTime, utcnow
from chainpay.engine.models.merchant import Merchant
from chainpay.engine.models.payment_intent import PaymentIntent, PaymentIntentStatus
from chainpay.engine.models.product import Product, ProductType
from chainpay.engine.models.receipt import Receipt
from chainpay.engine.models.transaction_digest import TransactionDigest
from chainpay.engine.models.user import User
from chainpay.engine.models.webhook import Webhook

ALL_MODELS: list[type[Base]] = [
    Merchant,
    User,
    Product,
    Webhook,
    PaymentIntent,
    TransactionDigest,
    Receipt,
]

__all__ = [
    "ALL_MODELS",
    "Base",
    "Merchant",
    "PaymentIntent",
    "PaymentIntentStatus",
    "Product",
    "ProductType",
    "Receipt",
    "TimestampMixin",
    "TransactionDigest",
    "UTCDateTime",
    "User",
    "Webhook",
    "utcnow",
]
