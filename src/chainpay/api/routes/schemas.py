"""Subscription API request/response Pydantic schemas."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from chainpay.engine.models.payment_intent import PaymentIntent


class SignedTransactionRequest(BaseModel):
    """A client-signed transaction."""

    model_config = ConfigDict(populate_by_name=True)

    tx_bytes: str = Field(..., alias="bytes", min_length=1, description="Base64 transaction data")
    signature: str = Field(..., min_length=1, description="Base64 serialized signature")


class PaymentResponse(BaseModel):
    success: bool = True
    message: str
    receipt_id: str = Field(serialization_alias="receiptId")
    transaction_digest: str = Field(serialization_alias="digest")
    payment_intent_id: str | None = Field(default=None, serialization_alias="paymentIntentId")
    next_payment_due: datetime | None = Field(default=None, serialization_alias="nextPaymentDue")


class UnsubscribeResponse(BaseModel):
    success: bool
    message: str
    payment_intent_id: str = Field(serialization_alias="paymentIntentId")
    ledger_success: bool = Field(default=False, serialization_alias="ledgerSuccess")
    transaction_digest: str | None = Field(default=None, serialization_alias="digest")


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: int
    recurring_period: int = Field(serialization_alias="recurringPeriod")


class SubscriptionResponse(BaseModel):
    """One active subscription of the caller."""

    id: str
    product_id: str = Field(serialization_alias="productId")
    ref_id: str
    status: str
    last_paid_on: datetime = Field(serialization_alias="lastPaidOn")
    next_payment_due: datetime = Field(serialization_alias="nextPaymentDue")
    product: ProductSummary

    @classmethod
    def from_intent(cls, intent: PaymentIntent) -> SubscriptionResponse:
        return cls(
            id=intent.id,
            product_id=intent.product_id,
            ref_id=intent.ref_id,
            status=str(intent.status),
            last_paid_on=intent.last_paid_on,
            next_payment_due=intent.next_payment_due,
            product=ProductSummary.model_validate(intent.product),
        )
