"""Sui full node JSON-RPC client — execute, query events, dry run, build.

Provides an async HTTP client for the JSON-RPC methods the payment engine
needs:
- ``sui_executeTransactionBlock`` — submit a signed transaction
- ``suix_queryEvents`` — events emitted by a transaction
- ``sui_dryRunTransactionBlock`` — simulate without committing
- ``unsafe_moveCall`` — build unsigned transaction bytes for a Move call
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Any

import httpx

from chainpay.errors.ledger_errors import LedgerError, NotYetIndexed
from chainpay.ledger.models import DryRunResult, EventPage, ExecutionResult

if TYPE_CHECKING:
    from chainpay.config.settings import LedgerConfig
    from chainpay.ledger.models import MoveCall

# JSON-RPC "invalid params"; returned while a fresh digest is not yet indexed
RPC_INVALID_PARAMS = -32602
_NOT_INDEXED_MESSAGE = "Could not find the referenced transaction"


class LedgerClient:
    """Async JSON-RPC client for a Sui full node.

    Usage::

        client = LedgerClient(config)
        await client.connect()
        try:
            page = await client.query_events(digest)
        finally:
            await client.close()
    """

    def __init__(self, config: LedgerConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize the client.

        Args:
            config: Ledger configuration (rpc url, timeouts).
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._config.effective_rpc_url,
            headers={"Content-Type": "application/json"},
            timeout=self._config.request_timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute_transaction_block(self, tx_bytes: str, signatures: list[str]) -> ExecutionResult:
        """Submit a signed transaction and wait for local execution.

        Args:
            tx_bytes: Base64 BCS transaction data.
            signatures: Base64 serialized signatures.

        Raises:
            LedgerError: On RPC errors or if the transaction aborted.
        """
        result = await self._call(
            "sui_executeTransactionBlock",
            [
                tx_bytes,
                signatures,
                {"showEffects": True, "showEvents": True},
                "WaitForLocalExecution",
            ],
        )
        execution = ExecutionResult.from_dict(result)
        if not execution.succeeded:
            msg = f"transaction {execution.digest} failed: {execution.error or execution.status}"
            raise LedgerError(msg, status_code=422)
        if not execution.digest:
            msg = "ledger returned no digest for executed transaction"
            raise LedgerError(msg)
        return execution

    async def query_events(self, digest: str) -> EventPage:
        """Fetch the events emitted by transaction *digest*.

        Raises:
            NotYetIndexed: If the node does not know the transaction yet.
            LedgerError: On any other RPC error.
        """
        result = await self._call(
            "suix_queryEvents",
            [{"Transaction": digest}, None, None, False],
            may_be_unindexed=True,
        )
        return EventPage.from_dict(result)

    async def dry_run_transaction_block(self, tx_bytes: str) -> DryRunResult:
        """Simulate a transaction without committing it."""
        result = await self._call("sui_dryRunTransactionBlock", [tx_bytes])
        return DryRunResult.from_dict(result)

    async def move_call(self, signer: str, call: MoveCall, *, gas_budget: int) -> str:
        """Build unsigned transaction bytes for *call*.

        Returns:
            Base64 BCS transaction data ready to be signed.
        """
        result = await self._call(
            "unsafe_moveCall",
            [
                signer,
                call.package_id,
                call.module,
                call.function,
                list(call.type_arguments),
                list(call.arguments),
                None,
                str(gas_budget),
            ],
        )
        tx_bytes = result.get("txBytes")
        if not tx_bytes:
            msg = f"ledger returned no transaction bytes for {call.target}"
            raise LedgerError(msg)
        return tx_bytes

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Ledger client not connected. Call connect() first."
            raise LedgerError(msg, status_code=500)
        return self._client

    async def _call(
        self,
        method: str,
        params: list[Any],
        *,
        may_be_unindexed: bool = False,
    ) -> dict[str, Any]:
        """Perform one JSON-RPC request and return its ``result`` member."""
        client = self._ensure_connected()
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            response = await client.post("", json=payload)
        except httpx.HTTPError as exc:
            raise LedgerError(f"ledger {method} request failed: {exc}") from exc

        if response.status_code != 200:
            msg = f"ledger {method} failed ({response.status_code}): {response.text[:200]}"
            raise LedgerError(msg)

        try:
            body = response.json()
        except ValueError as exc:
            raise LedgerError(f"ledger {method} returned invalid JSON") from exc

        error = body.get("error")
        if error:
            self._raise_rpc_error(method, error, may_be_unindexed=may_be_unindexed)
        result = body.get("result")
        return result if isinstance(result, dict) else {}

    @staticmethod
    def _raise_rpc_error(method: str, error: dict[str, Any], *, may_be_unindexed: bool) -> None:
        code = error.get("code")
        message = str(error.get("message", ""))
        if may_be_unindexed and (code == RPC_INVALID_PARAMS or _NOT_INDEXED_MESSAGE in message):
            raise NotYetIndexed(f"ledger {method}: {message}", rpc_code=code)
        raise LedgerError(f"ledger {method} error {code}: {message}", rpc_code=code)
