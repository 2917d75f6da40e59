"""ChainPayError — base exception class for all chainpay errors."""

from __future__ import annotations


class ChainPayError(Exception):
    """Base error for all payment and subscription operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error category string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "chainpay-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
