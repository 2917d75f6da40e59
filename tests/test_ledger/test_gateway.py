"""Tests for the ledger gateway retry policy and server-side calls."""

from __future__ import annotations

import base64

import pytest

from chainpay.config.settings import LedgerConfig
from chainpay.errors.ledger_errors import LedgerError, NotYetIndexed
from chainpay.ledger.gateway import LedgerGateway
from chainpay.ledger.models import EventPage, ExecutionResult
from chainpay.ledger.signer import LedgerSigner


class StubClient:
    """Replays a scripted sequence of query_events outcomes."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.query_calls = 0
        self.executed: list[tuple[str, list[str]]] = []
        self.built: list = []

    async def query_events(self, digest):
        self.query_calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def execute_transaction_block(self, tx_bytes, signatures):
        self.executed.append((tx_bytes, signatures))
        return ExecutionResult(digest="dg-exec", status="success")

    async def move_call(self, signer, call, *, gas_budget):
        self.built.append((signer, call, gas_budget))
        return base64.b64encode(b"tx-data").decode()

    async def dry_run_transaction_block(self, tx_bytes):
        raise AssertionError("unused")


def _gateway(client, *, signer=None, delays=None, **config):
    async def fake_sleep(delay):
        delays.append(delay)

    ledger = LedgerConfig(package_id="0xpkg", max_retries=5, initial_delay=0.5, **config)
    return LedgerGateway(client, ledger, signer=signer, sleep=fake_sleep)


class TestQueryEventsRetry:
    async def test_succeeds_after_transient_failures_with_doubling_delays(self):
        delays: list[float] = []
        page = EventPage()
        client = StubClient([NotYetIndexed("a"), NotYetIndexed("b"), NotYetIndexed("c"), page])
        gateway = _gateway(client, delays=delays)

        assert await gateway.query_events("dg") is page
        assert delays == [0.5, 1.0, 2.0]
        assert client.query_calls == 4

    async def test_other_errors_are_not_retried(self):
        delays: list[float] = []
        client = StubClient([LedgerError("boom")])
        gateway = _gateway(client, delays=delays)

        with pytest.raises(LedgerError, match="boom"):
            await gateway.query_events("dg")
        assert delays == []
        assert client.query_calls == 1

    async def test_exhaustion_raises_last_error(self):
        delays: list[float] = []
        errors = [NotYetIndexed(f"attempt {i}") for i in range(1, 6)]
        client = StubClient(errors)
        gateway = _gateway(client, delays=delays)

        with pytest.raises(NotYetIndexed, match="attempt 5"):
            await gateway.query_events("dg")
        assert client.query_calls == 5
        assert delays == [0.5, 1.0, 2.0, 4.0]

    async def test_per_call_overrides(self):
        delays: list[float] = []
        client = StubClient([NotYetIndexed("a"), NotYetIndexed("b")])
        gateway = _gateway(client, delays=delays)

        with pytest.raises(NotYetIndexed):
            await gateway.query_events("dg", max_retries=2, initial_delay=0.1)
        assert delays == [0.1]


class TestServerCalls:
    async def test_execute_move_call_signs_built_bytes(self):
        signer = LedgerSigner(bytes(range(32)))
        client = StubClient()
        gateway = _gateway(client, signer=signer, delays=[])

        digest = await gateway.execute_move_call(gateway.target("makePaymentFromIntent"), ["0xa"])

        assert digest == "dg-exec"
        sender, call, budget = client.built[0]
        assert sender == signer.address
        assert call.target == "0xpkg::payment::makePaymentFromIntent"
        assert budget == 50_000_000
        tx_bytes, signatures = client.executed[0]
        assert signatures == [signer.sign_transaction(b"tx-data")]
        assert base64.b64decode(tx_bytes) == b"tx-data"

    async def test_missing_signer_raises(self):
        gateway = _gateway(StubClient(), delays=[])
        with pytest.raises(LedgerError, match="signing key"):
            await gateway.execute_move_call("0xpkg::payment::f", [])

    async def test_submit_returns_digest(self):
        client = StubClient()
        gateway = _gateway(client, delays=[])
        assert await gateway.submit("dHg=", "c2ln") == "dg-exec"
        assert client.executed == [("dHg=", ["c2ln"])]
