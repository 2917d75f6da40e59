"""Ledger — Sui full node access for payments and subscriptions.

Provides:
- ``LedgerClient`` — JSON-RPC transport
- ``LedgerGateway`` — submit / query-with-retry / dry-run contract
- ``LedgerSigner`` — server-side Ed25519 signing
"""

from __future__ import annotations

from chainpay.ledger.client import LedgerClient
from chainpay.ledger.gateway import LedgerGateway
from chainpay.ledger.models import (
    INTENT_CREATION_EVENT,
    INTENT_DELETE_EVENT,
    PAYMENT_RECEIPT_EVENT,
    DryRunResult,
    EventPage,
    LedgerEvent,
)
from chainpay.ledger.signer import LedgerSigner

__all__ = [
    "INTENT_CREATION_EVENT",
    "INTENT_DELETE_EVENT",
    "PAYMENT_RECEIPT_EVENT",
    "DryRunResult",
    "EventPage",
    "LedgerClient",
    "LedgerEvent",
    "LedgerGateway",
    "LedgerSigner",
]
