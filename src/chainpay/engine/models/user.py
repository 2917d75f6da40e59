"""User model — the payer side of a subscription."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from chainpay.engine.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """An end user paying for products from ``wallet``."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(66), primary_key=True)
    wallet: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    def __repr__(self) -> str:
        return f"<User id={self.id} wallet={self.wallet[:12]}...>"
