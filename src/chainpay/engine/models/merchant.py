"""Merchant model — the payee side of every product."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from chainpay.engine.models.base import Base, TimestampMixin


class Merchant(Base, TimestampMixin):
    """A merchant selling products; ``wallet`` receives settlements."""

    __tablename__ = "merchants"

    id: Mapped[str] = mapped_column(String(66), primary_key=True)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    wallet: Mapped[str | None] = mapped_column(String(66), unique=True, nullable=True)

    def __repr__(self) -> str:
        return f"<Merchant id={self.id} name={self.business_name!r}>"
