"""TransactionDigest model — ledger transactions linked to an intent."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from chainpay.engine.models.base import Base, utcnow


class TransactionDigest(Base):
    """Append-only link between a ledger digest and a payment intent."""

    __tablename__ = "transaction_digests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    digest: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    payment_intent_id: Mapped[str] = mapped_column(
        ForeignKey("payment_intents.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<TransactionDigest digest={self.digest[:12]}... intent={self.payment_intent_id[:12]}...>"
