"""Domain error classes and pre-defined error instances."""

from __future__ import annotations

from chainpay.errors.chainpay_errors import ChainPayError

# -- Error classes ----------------------------------------------------------


class NotFoundError(ChainPayError):
    """A referenced intent, product, user or webhook does not exist."""

    def __init__(self, message: str, *, code: str = "not-found") -> None:
        super().__init__(message, status_code=404, code=code)


class NotActiveError(ChainPayError):
    """Operation on an intent that is no longer ACTIVE."""

    def __init__(self, message: str = "payment intent is not active") -> None:
        super().__init__(message, status_code=409, code="intent-not-active")


class DuplicateDigestError(ChainPayError):
    """A transaction digest has already been processed."""

    def __init__(self, digest: str) -> None:
        super().__init__(
            "this transaction has already been processed", status_code=409, code="duplicate-digest"
        )
        self.digest = digest


class ConfirmationMissingError(ChainPayError):
    """The ledger call succeeded but the expected application event is absent."""

    def __init__(self, event_type: str, digest: str = "") -> None:
        super().__init__(
            f"transaction {digest or '?'} succeeded but no {event_type} event was emitted",
            status_code=422,
            code="confirmation-missing",
        )
        self.event_type = event_type
        self.digest = digest


class SubscriptionExistsError(ChainPayError):
    """The user already holds an ACTIVE subscription for the product."""

    def __init__(self, product_id: str) -> None:
        super().__init__(
            "you already have an active subscription for this product",
            status_code=409,
            code="subscription-exists",
        )
        self.product_id = product_id


class InvalidTransactionError(ChainPayError):
    """A submitted transaction does not carry the events the operation needs."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400, code="invalid-transaction")


# -- Not Found --------------------------------------------------------------

ErrIntentNotFound = NotFoundError("payment intent not found", code="intent-not-found")
ErrProductNotFound = NotFoundError("product not found", code="product-not-found")
ErrUserNotFound = NotFoundError("user not found", code="user-not-found")
ErrMerchantNotFound = NotFoundError("merchant not found", code="merchant-not-found")
ErrSubscriptionNotFound = NotFoundError(
    "the subscription doesn't exist or doesn't belong to this user",
    code="subscription-not-found",
)

# -- Invalid transaction ----------------------------------------------------

ErrNoEvents = InvalidTransactionError("no events found in transaction")
ErrNoReceiptEvent = InvalidTransactionError("payment receipt event not found in transaction")
ErrNoUnsubscribeEvent = InvalidTransactionError("no unsubscribe event found in transaction")
ErrMissingTransaction = InvalidTransactionError("transaction bytes and signature are required")

# -- Auth -------------------------------------------------------------------

ErrUnauthorized = ChainPayError("missing user identity", status_code=401, code="unauthorized")
