"""PaymentIntent model — the persisted state of one subscription."""

from __future__ import annotations

import enum
from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chainpay.engine.models.base import Base, TimestampMixin
from chainpay.engine.models.product import Product
from chainpay.engine.models.user import User


class PaymentIntentStatus(enum.StrEnum):
    """Lifecycle status of a payment intent."""

    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class PaymentIntent(Base, TimestampMixin):
    """A recorded promise to collect a recurring payment on a schedule.

    ``id`` matches the on-chain payment intent object id. At most one intent
    exists per (product, user) pair.
    """

    __tablename__ = "payment_intents"
    __table_args__ = (UniqueConstraint("product_id", "user_id", name="uq_intent_product_user"),)

    id: Mapped[str] = mapped_column(String(66), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    last_paid_on: Mapped[datetime] = mapped_column(nullable=False)
    next_payment_due: Mapped[datetime] = mapped_column(nullable=False, index=True)
    ref_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[PaymentIntentStatus] = mapped_column(
        Enum(PaymentIntentStatus, name="payment_intent_status"),
        nullable=False,
        default=PaymentIntentStatus.ACTIVE,
        index=True,
    )

    product: Mapped[Product] = relationship(Product, lazy="joined")
    user: Mapped[User] = relationship(User, lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status == PaymentIntentStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<PaymentIntent id={self.id[:12]}... status={self.status} due={self.next_payment_due}>"
