"""Shared test fixtures for the chainpay test suite."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

import pytest

from chainpay.config.settings import DatabaseEngine
from chainpay.ledger.models import DryRunResult, EventPage, LedgerEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

PACKAGE_ID = "0xpkg"
SERVER_SEED_HEX = "11" * 32
THIRTY_DAYS_MS = 30 * 24 * 60 * 60 * 1000


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeGateway:
    """In-memory stand-in for ``LedgerGateway``.

    Events returned for a server-side call are keyed by Move function name;
    events for client submissions come from ``submit_events``.
    """

    def __init__(self) -> None:
        self.move_calls: list[tuple[str, list[str]]] = []
        self.submissions: list[tuple[str, str]] = []
        self.move_call_events: dict[str, list[LedgerEvent]] = {}
        self.move_call_errors: dict[str, Exception] = {}
        self.submit_digest = "client-digest-1"
        self.submit_events: list[LedgerEvent] = []
        self.preview_events: list[LedgerEvent] = []
        self._pages: dict[str, EventPage] = {}

    @property
    def package_id(self) -> str:
        return PACKAGE_ID

    def target(self, function: str, module: str = "payment") -> str:
        return f"{PACKAGE_ID}::{module}::{function}"

    def functions_called(self) -> list[str]:
        return [target.rsplit("::", 1)[-1] for target, _ in self.move_calls]

    async def execute_move_call(self, target: str, arguments: list[str]) -> str:
        self.move_calls.append((target, list(arguments)))
        function = target.rsplit("::", 1)[-1]
        if function in self.move_call_errors:
            raise self.move_call_errors[function]
        digest = f"{function}-{len(self.move_calls)}"
        self._pages[digest] = EventPage(data=list(self.move_call_events.get(function, [])))
        return digest

    async def submit(self, tx_bytes: str, signature: str) -> str:
        self.submissions.append((tx_bytes, signature))
        self._pages[self.submit_digest] = EventPage(data=list(self.submit_events))
        return self.submit_digest

    async def query_events(self, digest: str) -> EventPage:
        return self._pages.get(digest, EventPage())

    async def dry_run(self, tx_bytes: str) -> DryRunResult:
        return DryRunResult(status="success", events=list(self.preview_events))


class RecordingNotifier:
    """Collects every notification in emission order."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def notify_product(self, product_id: str, event: Any) -> None:
        self.events.append(event)

    def notify(self, observer_ids: list[str], payload: dict[str, Any]) -> None:
        self.events.append(payload)

    @property
    def names(self) -> list[str]:
        return [str(e.event) for e in self.events]


def ledger_event(suffix: str, payload: dict[str, Any]) -> LedgerEvent:
    """Build an event of type ``<package><suffix>``."""
    return LedgerEvent(type=f"{PACKAGE_ID}{suffix}", parsed_json=payload)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from chainpay.config.settings import (
        AppConfig,
        DatabaseConfig,
        LedgerConfig,
        SchedulerConfig,
    )

    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        ledger=LedgerConfig(
            rpc_url="http://ledger.test",
            package_id=PACKAGE_ID,
            secret_key=SERVER_SEED_HEX,
            active_subscription_registry="0xactive",
            initial_delay=0.01,
        ),
        scheduler=SchedulerConfig(enabled=False),
    )


@pytest.fixture
async def datastore(app_config) -> AsyncIterator:
    """Open an in-memory datastore with all tables created."""
    import chainpay.engine.models  # noqa: F401
    from chainpay.datastore.client import Datastore
    from chainpay.engine.models.base import Base

    ds = Datastore(app_config.db)
    await ds.open(base=Base)
    yield ds
    await ds.close()


@pytest.fixture
def repos(datastore):
    from chainpay.engine.repository import Repositories

    return Repositories.from_datastore(datastore)


@pytest.fixture
async def seed(datastore):
    """Insert a merchant, a user, a subscription and a one-time product."""
    from chainpay.engine.models import Merchant, Product, ProductType, User, Webhook

    merchant = Merchant(id="m_1", business_name="Acme", email="acme@example.com", wallet="0xmerchant")
    user = User(id="u_1", email="alice@example.com", wallet="0xalice")
    subscription = Product(
        id="0xprod_sub",
        name="Monthly",
        price=1_000,
        product_type=ProductType.SUBSCRIPTION,
        recurring_period=THIRTY_DAYS_MS,
        subscribers_registry="0xsubs",
        merchant_id=merchant.id,
    )
    onetime = Product(
        id="0xprod_one",
        name="Sticker",
        price=250,
        product_type=ProductType.ONETIME,
        recurring_period=0,
        subscribers_registry="",
        merchant_id=merchant.id,
    )
    webhook = Webhook(
        id="wh_1",
        url="https://merchant.test/hook",
        secret="s3cret",
        merchant_id=merchant.id,
        product_id=subscription.id,
    )
    async with datastore.session() as session:
        session.add_all([merchant, user])
        await session.flush()
        session.add_all([subscription, onetime])
        await session.flush()
        session.add(webhook)
        await session.commit()
    return SimpleNamespace(
        merchant=merchant, user=user, subscription=subscription, onetime=onetime, webhook=webhook
    )


@pytest.fixture
def make_intent(repos, seed):
    """Factory creating a payment intent for the seeded user and subscription."""
    from chainpay.engine.models import PaymentIntent, PaymentIntentStatus

    async def _make(
        intent_id: str = "0xintent_1",
        *,
        last_paid_on: datetime | None = None,
        next_payment_due: datetime | None = None,
        status: PaymentIntentStatus = PaymentIntentStatus.ACTIVE,
        product_id: str | None = None,
    ) -> PaymentIntent:
        last = last_paid_on or datetime(2025, 1, 1, tzinfo=UTC)
        intent = PaymentIntent(
            id=intent_id,
            user_id=seed.user.id,
            product_id=product_id or seed.subscription.id,
            last_paid_on=last,
            next_payment_due=next_payment_due or last + timedelta(days=30),
            ref_id="order-42",
            status=status,
        )
        return await repos.intents.create(intent)

    return _make


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def wait_until() -> Callable:
    """Poll *predicate* until it is true or the timeout expires."""

    async def _wait(predicate: Callable[[], Any], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            value = predicate()
            if asyncio.iscoroutine(value):
                value = await value
            if value:
                return
            if loop.time() > deadline:
                msg = "condition not met in time"
                raise AssertionError(msg)
            await asyncio.sleep(0.01)

    return _wait


@pytest.fixture
def test_client(app_config):
    """Provide a FastAPI TestClient with the app wired to test config."""
    from fastapi.testclient import TestClient

    from chainpay.api.app import create_app

    app = create_app(config=app_config)
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def make_event() -> Callable[[str, dict[str, Any]], LedgerEvent]:
    return ledger_event
