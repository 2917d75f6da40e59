"""Product model — one-time or subscription offerings."""

from __future__ import annotations

import enum
from datetime import timedelta

from sqlalchemy import BigInteger, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chainpay.engine.models.base import Base
from chainpay.engine.models.merchant import Merchant


class ProductType(enum.StrEnum):
    """How a product is billed."""

    ONETIME = "ONETIME"
    SUBSCRIPTION = "SUBSCRIPTION"


class Product(Base):
    """A product registered on-chain; ``id`` is the on-chain object id."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(66), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Price in MIST")
    product_type: Mapped[ProductType] = mapped_column(
        Enum(ProductType, name="product_type"), nullable=False
    )
    recurring_period: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Billing period in milliseconds"
    )
    subscribers_registry: Mapped[str] = mapped_column(String(66), nullable=False, default="")
    merchant_id: Mapped[str | None] = mapped_column(
        ForeignKey("merchants.id", ondelete="SET NULL"), nullable=True
    )

    merchant: Mapped[Merchant | None] = relationship(Merchant, lazy="joined")

    @property
    def is_subscription(self) -> bool:
        return self.product_type == ProductType.SUBSCRIPTION

    @property
    def period(self) -> timedelta:
        """``recurring_period`` as a timedelta."""
        return timedelta(milliseconds=self.recurring_period)

    def __repr__(self) -> str:
        return f"<Product id={self.id[:12]}... type={self.product_type}>"
