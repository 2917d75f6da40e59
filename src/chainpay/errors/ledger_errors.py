"""Ledger (Sui full node) related errors."""

from __future__ import annotations

from chainpay.errors.chainpay_errors import ChainPayError


class LedgerError(ChainPayError):
    """Error from the ledger RPC; fatal to the current operation."""

    def __init__(self, message: str, *, status_code: int = 502, rpc_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code, code="ledger-error")
        self.rpc_code = rpc_code


class NotYetIndexed(LedgerError):
    """The referenced transaction is not queryable yet (read-after-write lag)."""

    def __init__(self, message: str, *, rpc_code: int | None = None) -> None:
        super().__init__(message, status_code=503, rpc_code=rpc_code)
        self.code = "not-yet-indexed"
