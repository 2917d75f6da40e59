"""Subscription endpoints.

Payment submission, user-signed unsubscribe, manual cancellation and the
caller's active subscriptions.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from chainpay.api.dependencies import EngineDep, UserIdDep  # noqa: TC001
from chainpay.api.routes.schemas import (
    PaymentResponse,
    SignedTransactionRequest,
    SubscriptionResponse,
    UnsubscribeResponse,
)
from chainpay.errors.chainpay_errors import ChainPayError

router = APIRouter(tags=["subscription"])


def _dump(model: PaymentResponse | UnsubscribeResponse | SubscriptionResponse) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.post("/pay")
async def pay(user_id: UserIdDep, engine: EngineDep, body: SignedTransactionRequest) -> dict[str, Any]:
    """Execute a signed payment transaction."""
    outcome = await engine.intake.process_payment(body.tx_bytes, body.signature, user_id)
    message = (
        "Subscription payment processed successfully"
        if outcome.subscription
        else "One-time payment processed successfully"
    )
    return _dump(
        PaymentResponse(
            message=message,
            receipt_id=outcome.receipt_id,
            transaction_digest=outcome.transaction_digest,
            payment_intent_id=outcome.payment_intent_id,
            next_payment_due=outcome.next_payment_due,
        )
    )


@router.post("/unsubscribe")
async def unsubscribe(user_id: UserIdDep, engine: EngineDep, body: SignedTransactionRequest) -> dict[str, Any]:
    """Execute a user-signed unsubscribe transaction and clean up."""
    result = await engine.intake.process_unsubscribe(body.tx_bytes, body.signature)
    if not result.success:
        raise ChainPayError(result.error or "cleanup failed", status_code=500, code="cleanup-failed")
    return _dump(
        UnsubscribeResponse(
            success=True,
            message="Unsubscribed successfully",
            payment_intent_id=result.intent_id,
            transaction_digest=result.transaction_digest,
        )
    )


@router.post("/cancel-subscription/{intent_id}")
async def cancel_subscription(intent_id: str, user_id: UserIdDep, engine: EngineDep) -> dict[str, Any]:
    """Cancel one of the caller's subscriptions from the backend."""
    result = await engine.intake.cancel_subscription(intent_id, user_id)
    if not result.success:
        raise ChainPayError(result.error or "cleanup failed", status_code=500, code="cleanup-failed")
    return _dump(
        UnsubscribeResponse(
            success=True,
            message="Subscription cancelled successfully",
            payment_intent_id=intent_id,
            ledger_success=result.ledger_success,
            transaction_digest=result.transaction_digest,
        )
    )


@router.get("/my-subscriptions")
async def my_subscriptions(user_id: UserIdDep, engine: EngineDep) -> list[dict[str, Any]]:
    """List the caller's active subscriptions."""
    intents = await engine.intake.list_subscriptions(user_id)
    return [_dump(SubscriptionResponse.from_intent(intent)) for intent in intents]
