"""Webhook model — observer endpoints attached to a product."""

from __future__ import annotations

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chainpay.engine.models.base import Base, TimestampMixin


class Webhook(Base, TimestampMixin):
    """A registered webhook receiving payment events for a product."""

    __tablename__ = "api_webhooks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Unique webhook ID")
    url: Mapped[str] = mapped_column(Text, nullable=False, comment="Callback URL")
    secret: Mapped[str] = mapped_column(Text, nullable=False, default="", comment="Signing secret")
    merchant_id: Mapped[str | None] = mapped_column(
        ForeignKey("merchants.id", ondelete="SET NULL"), nullable=True
    )
    product_id: Mapped[str | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def __repr__(self) -> str:
        return f"<Webhook id={self.id[:16]} url={self.url[:30]}>"
