"""Ledger gateway — submit, query events with retry, dry run, server calls.

The gateway is the only component the payment engine talks to for
ledger access. Event queries are retried with exponential backoff while
the node reports the transaction as not yet indexed: ledger
read-after-write is eventually consistent, so a just-submitted digest may
not be queryable for a short window.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING

from chainpay.errors.ledger_errors import LedgerError, NotYetIndexed
from chainpay.ledger.models import MoveCall

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chainpay.config.settings import LedgerConfig
    from chainpay.ledger.client import LedgerClient
    from chainpay.ledger.models import DryRunResult, EventPage
    from chainpay.ledger.signer import LedgerSigner
    from chainpay.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


class LedgerGateway:
    """Narrow request/response contract over the ledger client.

    Usage::

        gateway = LedgerGateway(client, config, signer=signer)
        digest = await gateway.submit(tx_bytes, signature)
        events = await gateway.query_events(digest)
    """

    def __init__(
        self,
        client: LedgerClient,
        config: LedgerConfig,
        *,
        signer: LedgerSigner | None = None,
        metrics: EngineMetrics | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._signer = signer
        self._metrics = metrics
        self._sleep = sleep

    @property
    def package_id(self) -> str:
        return self._config.package_id

    @property
    def server_address(self) -> str:
        """Address of the server signing key.

        Raises:
            LedgerError: If no server key is configured.
        """
        return self._require_signer().address

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def submit(self, tx_bytes: str, signature: str) -> str:
        """Submit a client-signed transaction and return its digest."""
        execution = await self._client.execute_transaction_block(tx_bytes, [signature])
        logger.info("Submitted transaction %s", execution.digest)
        return execution.digest

    async def query_events(
        self,
        digest: str,
        *,
        max_retries: int | None = None,
        initial_delay: float | None = None,
    ) -> EventPage:
        """Query events for *digest*, retrying while it is not yet indexed.

        Makes at most ``max_retries`` attempts. The wait before the second
        attempt is ``initial_delay`` and doubles after every failed attempt.
        Any error other than :class:`NotYetIndexed` propagates immediately.

        Raises:
            NotYetIndexed: When every attempt failed as not yet indexed.
            LedgerError: On any other ledger error.
        """
        attempts = max_retries if max_retries is not None else self._config.max_retries
        delay = initial_delay if initial_delay is not None else self._config.initial_delay

        retries = 0
        while True:
            try:
                return await self._client.query_events(digest)
            except NotYetIndexed:
                retries += 1
                if self._metrics:
                    self._metrics.inc_ledger_retry()
                if retries >= attempts:
                    logger.warning("Transaction %s still not indexed after %d attempts", digest, retries)
                    raise
                logger.info(
                    "Transaction %s not yet indexed, retrying in %.3fs (attempt %d/%d)",
                    digest,
                    delay,
                    retries,
                    attempts,
                )
                await self._sleep(delay)
                delay *= 2

    async def dry_run(self, tx_bytes: str) -> DryRunResult:
        """Simulate *tx_bytes*; the result carries the gas estimate and events."""
        return await self._client.dry_run_transaction_block(tx_bytes)

    async def execute_move_call(self, target: str, arguments: list[str]) -> str:
        """Build, sign with the server key and submit a Move call.

        Args:
            target: ``package::module::function``.
            arguments: Object ids passed to the function.

        Returns:
            The transaction digest.
        """
        signer = self._require_signer()
        call = MoveCall.from_target(target, arguments)
        tx_bytes = await self._client.move_call(signer.address, call, gas_budget=self._config.gas_budget)
        signature = signer.sign_transaction(base64.b64decode(tx_bytes))
        execution = await self._client.execute_transaction_block(tx_bytes, [signature])
        logger.info("Executed %s as %s", call.target, execution.digest)
        return execution.digest

    def target(self, function: str, module: str = "payment") -> str:
        """Fully qualified target for a function in the payment package."""
        return f"{self._config.package_id}::{module}::{function}"

    def _require_signer(self) -> LedgerSigner:
        if self._signer is None:
            msg = "No server signing key configured"
            raise LedgerError(msg, status_code=500)
        return self._signer
