"""Tests for the start-up bootstrapper."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from chainpay.engine.models import PaymentIntentStatus
from chainpay.subscriptions.bootstrap import Bootstrapper
from chainpay.subscriptions.results import RenewalResult
from chainpay.subscriptions.scheduler import PaymentScheduler

NOW = datetime(2025, 2, 1, tzinfo=UTC)


class FakeRenewal:
    def __init__(self, scheduler: PaymentScheduler, *, fail: set[str] | None = None) -> None:
        self.scheduler = scheduler
        self.fail = fail or set()
        self.calls: list[str] = []
        self.jobs_at_call: list[int] = []

    async def process_renewal(self, intent_id: str) -> RenewalResult:
        self.calls.append(intent_id)
        self.jobs_at_call.append(self.scheduler.job_count)
        if intent_id in self.fail:
            return RenewalResult(intent_id=intent_id, success=False, error="declined")
        return RenewalResult(intent_id=intent_id, success=True, next_payment_due=NOW + timedelta(days=30))


class TestBootstrap:
    async def test_overdue_renewed_before_timer_armed(self, repos, make_intent):
        await make_intent("0xa", next_payment_due=NOW - timedelta(days=2))
        scheduler = PaymentScheduler(repos.intents, now=lambda: NOW)
        renewal = FakeRenewal(scheduler)

        report = await Bootstrapper(repos.intents, scheduler, renewal, now=lambda: NOW).run()

        assert renewal.calls == ["0xa"]
        assert renewal.jobs_at_call == [0]
        assert scheduler.next_run("0xa") == NOW + timedelta(days=30)
        assert report.renewed == 1
        assert report.scheduled == 1
        await scheduler.shutdown()

    async def test_future_intents_scheduled_without_renewal(self, repos, make_intent):
        due = datetime(2099, 1, 1, tzinfo=UTC)
        await make_intent("0xa", next_payment_due=due)
        scheduler = PaymentScheduler(repos.intents, now=lambda: NOW)
        renewal = FakeRenewal(scheduler)

        report = await Bootstrapper(repos.intents, scheduler, renewal, now=lambda: NOW).run()

        assert renewal.calls == []
        assert scheduler.next_run("0xa") == due
        assert report.total == 1
        assert report.scheduled == 1
        await scheduler.shutdown()

    async def test_failures_are_isolated(self, repos, make_intent):
        await make_intent("0xa", next_payment_due=NOW - timedelta(days=1))
        await make_intent("0xb", next_payment_due=datetime(2099, 1, 1, tzinfo=UTC), product_id="0xprod_one")
        scheduler = PaymentScheduler(repos.intents, now=lambda: NOW)
        renewal = FakeRenewal(scheduler, fail={"0xa"})

        report = await Bootstrapper(repos.intents, scheduler, renewal, now=lambda: NOW).run()

        assert report.failed == 1
        assert report.scheduled == 1
        assert not scheduler.has_job("0xa")
        assert scheduler.has_job("0xb")
        await scheduler.shutdown()

    async def test_exception_in_one_intent_does_not_stop_others(self, repos, make_intent):
        await make_intent("0xa", next_payment_due=NOW - timedelta(days=1))
        await make_intent("0xb", next_payment_due=datetime(2099, 1, 1, tzinfo=UTC), product_id="0xprod_one")
        scheduler = PaymentScheduler(repos.intents, now=lambda: NOW)

        class Exploding(FakeRenewal):
            async def process_renewal(self, intent_id):
                raise RuntimeError("boom")

        report = await Bootstrapper(repos.intents, scheduler, Exploding(scheduler), now=lambda: NOW).run()

        assert report.failed == 1
        assert scheduler.has_job("0xb")
        await scheduler.shutdown()

    async def test_inactive_intents_ignored(self, repos, make_intent):
        await make_intent("0xa", status=PaymentIntentStatus.FAILED)
        scheduler = PaymentScheduler(repos.intents, now=lambda: NOW)
        report = await Bootstrapper(repos.intents, scheduler, FakeRenewal(scheduler), now=lambda: NOW).run()
        assert report.total == 0
        assert scheduler.job_count == 0
