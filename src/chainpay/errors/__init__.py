"""Error taxonomy for chainpay."""

from __future__ import annotations

from chainpay.errors.chainpay_errors import ChainPayError
from chainpay.errors.definitions import (
    ConfirmationMissingError,
    DuplicateDigestError,
    InvalidTransactionError,
    NotActiveError,
    NotFoundError,
    SubscriptionExistsError,
)
from chainpay.errors.ledger_errors import LedgerError, NotYetIndexed

__all__ = [
    "ChainPayError",
    "ConfirmationMissingError",
    "DuplicateDigestError",
    "InvalidTransactionError",
    "LedgerError",
    "NotActiveError",
    "NotFoundError",
    "NotYetIndexed",
    "SubscriptionExistsError",
]
