"""Receipt model — immutable record of a settled payment."""

from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from chainpay.engine.models.base import Base, utcnow


def _new_id() -> str:
    return uuid.uuid4().hex


class Receipt(Base):
    """A completed one-time or subscription payment."""

    __tablename__ = "receipts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    owner: Mapped[str] = mapped_column(String(66), nullable=False, comment="Payer wallet")
    ref_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Amount in MIST")
    intent_id: Mapped[str | None] = mapped_column(
        ForeignKey("payment_intents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    transaction_digest: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Receipt id={self.id} amount={self.amount} product={self.product_id[:12]}...>"
