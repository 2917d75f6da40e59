"""Tests for unsubscribe / cleanup."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from chainpay.engine.models import PaymentIntentStatus
from chainpay.ledger.models import INTENT_DELETE_EVENT
from chainpay.subscriptions.scheduler import PaymentScheduler
from chainpay.subscriptions.unsubscribe import UnsubscribeHandler


@pytest.fixture
def scheduler(repos):
    return PaymentScheduler(repos.intents)


@pytest.fixture
def handler(repos, gateway, notifier, scheduler):
    return UnsubscribeHandler(repos, gateway, notifier, scheduler, active_subscription_registry="0xactive")


class TestUnsubscribe:
    async def test_active_intent(self, handler, repos, gateway, notifier, make_intent, make_event):
        await make_intent()
        await repos.digests.create("dg-1", "0xintent_1")
        gateway.move_call_events["unsubscribeFromProduct"] = [
            make_event(INTENT_DELETE_EVENT, {"intentId": "0xintent_1"})
        ]

        result = await handler.handle_unsubscribe("0xintent_1")

        assert result.success
        assert not result.noop
        assert result.ledger_success
        assert result.transaction_digest is not None
        target, arguments = gateway.move_calls[0]
        assert target == "0xpkg::payment::unsubscribeFromProduct"
        assert arguments == ["0xprod_sub", "0xintent_1", "0xsubs", "0xactive"]
        assert await repos.intents.get("0xintent_1") is None
        assert await repos.digests.exists("dg-1") is False
        assert notifier.names == ["unsubscribed"]

    async def test_second_call_is_noop(self, handler, notifier, make_intent):
        await make_intent()
        first = await handler.handle_unsubscribe("0xintent_1")
        second = await handler.handle_unsubscribe("0xintent_1")

        assert first.success
        assert second.success
        assert second.noop
        assert notifier.names == ["unsubscribed"]

    async def test_missing_delete_event_is_diagnostic_only(self, handler, repos, make_intent):
        await make_intent()
        result = await handler.handle_unsubscribe("0xintent_1")
        assert result.success
        assert result.ledger_success is False
        assert await repos.intents.get("0xintent_1") is None

    async def test_inactive_intent_skips_ledger(self, handler, gateway, make_intent):
        await make_intent(status=PaymentIntentStatus.FAILED)
        result = await handler.handle_unsubscribe("0xintent_1")
        assert result.success
        assert gateway.move_calls == []

    async def test_skip_ledger_and_no_notify(self, handler, gateway, notifier, make_intent):
        await make_intent()
        result = await handler.handle_unsubscribe("0xintent_1", notify=False, skip_ledger=True)
        assert result.success
        assert gateway.move_calls == []
        assert notifier.events == []

    async def test_payload_captured_before_delete(self, handler, notifier, make_intent):
        intent = await make_intent()
        await handler.handle_unsubscribe("0xintent_1", reason="payment_failed")
        payload = notifier.events[0].to_dict()
        assert payload["event"] == "payment_failed"
        assert payload["paidOn"] == intent.last_paid_on.isoformat()
        assert payload["ref_id"] == "order-42"
        assert payload["amount"] == "1000"

    async def test_timer_cancelled(self, handler, scheduler, make_intent):
        await make_intent()
        await scheduler.schedule("0xintent_1", datetime(2099, 1, 1, tzinfo=UTC))
        await handler.handle_unsubscribe("0xintent_1")
        assert not scheduler.has_job("0xintent_1")

    async def test_store_failure_is_structured(self, handler, repos, make_intent, monkeypatch):
        await make_intent()

        async def broken(intent_id):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repos.intents, "delete_with_digests", broken)
        result = await handler.handle_unsubscribe("0xintent_1")
        assert result.success is False
        assert result.error == "disk full"
