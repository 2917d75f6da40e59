"""Tests for the Sui JSON-RPC client — uses httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from chainpay.config.settings import LedgerConfig
from chainpay.errors.ledger_errors import LedgerError, NotYetIndexed
from chainpay.ledger.client import LedgerClient
from chainpay.ledger.models import PAYMENT_RECEIPT_EVENT, MoveCall

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config() -> LedgerConfig:
    return LedgerConfig(rpc_url="http://ledger.test", package_id="0xpkg")


def _rpc_handler(result=None, error=None, status=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if seen is not None:
            seen.append(body)
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if error is not None:
            payload["error"] = error
        else:
            payload["result"] = result
        return httpx.Response(status, json=payload)

    return handler


async def _client(handler) -> LedgerClient:
    client = LedgerClient(_config(), transport=httpx.MockTransport(handler))
    await client.connect()
    return client


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    async def test_connect_and_close(self):
        client = LedgerClient(_config())
        assert client.is_connected is False
        await client.connect()
        assert client.is_connected is True
        await client.close()
        assert client.is_connected is False

    async def test_not_connected_raises(self):
        client = LedgerClient(_config())
        with pytest.raises(LedgerError, match="not connected"):
            await client.query_events("abc")


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------


class TestQueryEvents:
    async def test_parses_events(self):
        seen: list[dict] = []
        result = {
            "data": [
                {
                    "id": {"txDigest": "dg1", "eventSeq": "0"},
                    "type": "0xpkg::payment::PaymentReceiptEvent",
                    "parsedJson": {"productId": "0xp", "amount": "1000"},
                    "sender": "0xalice",
                    "timestampMs": "1735689600000",
                }
            ],
            "hasNextPage": False,
            "nextCursor": None,
        }
        client = await _client(_rpc_handler(result=result, seen=seen))
        page = await client.query_events("dg1")
        await client.close()

        assert seen[0]["method"] == "suix_queryEvents"
        assert seen[0]["params"][0] == {"Transaction": "dg1"}
        event = page.find(PAYMENT_RECEIPT_EVENT)
        assert event is not None
        assert event.parsed_json["amount"] == "1000"
        assert event.tx_digest == "dg1"
        assert event.timestamp_ms == 1735689600000

    async def test_invalid_params_is_not_yet_indexed(self):
        client = await _client(_rpc_handler(error={"code": -32602, "message": "invalid params"}))
        with pytest.raises(NotYetIndexed):
            await client.query_events("dg1")
        await client.close()

    async def test_missing_transaction_message_is_not_yet_indexed(self):
        error = {"code": -32000, "message": "Could not find the referenced transaction [dg1]"}
        client = await _client(_rpc_handler(error=error))
        with pytest.raises(NotYetIndexed):
            await client.query_events("dg1")
        await client.close()

    async def test_other_rpc_error(self):
        client = await _client(_rpc_handler(error={"code": -32603, "message": "internal"}))
        with pytest.raises(LedgerError) as exc_info:
            await client.query_events("dg1")
        assert not isinstance(exc_info.value, NotYetIndexed)
        assert exc_info.value.rpc_code == -32603
        await client.close()

    async def test_http_error_status(self):
        client = await _client(_rpc_handler(result={}, status=500))
        with pytest.raises(LedgerError, match="500"):
            await client.query_events("dg1")
        await client.close()


class TestExecute:
    async def test_execute_returns_digest(self):
        seen: list[dict] = []
        result = {"digest": "dg9", "effects": {"status": {"status": "success"}}}
        client = await _client(_rpc_handler(result=result, seen=seen))
        execution = await client.execute_transaction_block("dHg=", ["c2ln"])
        await client.close()

        assert execution.digest == "dg9"
        assert seen[0]["method"] == "sui_executeTransactionBlock"
        assert seen[0]["params"][:2] == ["dHg=", ["c2ln"]]

    async def test_failed_effects_raise(self):
        result = {"digest": "dg9", "effects": {"status": {"status": "failure", "error": "MoveAbort"}}}
        client = await _client(_rpc_handler(result=result))
        with pytest.raises(LedgerError, match="MoveAbort"):
            await client.execute_transaction_block("dHg=", ["c2ln"])
        await client.close()

    async def test_not_found_message_is_not_transient_here(self):
        error = {"code": -32602, "message": "Could not find the referenced transaction"}
        client = await _client(_rpc_handler(error=error))
        with pytest.raises(LedgerError) as exc_info:
            await client.execute_transaction_block("dHg=", ["c2ln"])
        assert not isinstance(exc_info.value, NotYetIndexed)
        await client.close()


class TestDryRunAndBuild:
    async def test_dry_run(self):
        result = {
            "effects": {
                "status": {"status": "success"},
                "gasUsed": {"computationCost": "1000", "storageCost": "500", "storageRebate": "200"},
            },
            "events": [{"type": "0xpkg::payment::PaymentReceiptEvent", "parsedJson": {"productId": "0xp"}}],
        }
        client = await _client(_rpc_handler(result=result))
        preview = await client.dry_run_transaction_block("dHg=")
        await client.close()

        assert preview.succeeded
        assert preview.gas.total == 1300
        assert preview.find_event(PAYMENT_RECEIPT_EVENT).parsed_json == {"productId": "0xp"}

    async def test_move_call_builds_bytes(self):
        seen: list[dict] = []
        client = await _client(_rpc_handler(result={"txBytes": "AAEC"}, seen=seen))
        call = MoveCall.from_target("0xpkg::payment::makePaymentFromIntent", ["0xa", "0xb"])
        tx_bytes = await client.move_call("0xserver", call, gas_budget=1000)
        await client.close()

        assert tx_bytes == "AAEC"
        params = seen[0]["params"]
        assert seen[0]["method"] == "unsafe_moveCall"
        assert params[:4] == ["0xserver", "0xpkg", "payment", "makePaymentFromIntent"]
        assert params[5] == ["0xa", "0xb"]
        assert params[7] == "1000"
