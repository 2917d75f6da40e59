"""API fixtures: a started engine talking to a scripted ledger node."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from chainpay.api.app import create_app
from chainpay.engine.client import ChainPayEngine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

DIGEST = "0xdigest1"


class ScriptedNode:
    """JSON-RPC handler answering each method with a canned ``result``."""

    def __init__(self) -> None:
        self.methods: list[str] = []
        self.results: dict[str, Any] = {
            "sui_dryRunTransactionBlock": {"effects": {"status": {"status": "success"}}, "events": []},
            "sui_executeTransactionBlock": {"digest": DIGEST, "effects": {"status": {"status": "success"}}},
            "suix_queryEvents": {"data": []},
            "unsafe_moveCall": {"txBytes": "AAEC"},
        }

    def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        """Make ``suix_queryEvents`` return a single event."""
        self.results["suix_queryEvents"] = {
            "data": [{"type": f"0xpkg{event_type}", "parsedJson": payload, "id": {"txDigest": DIGEST}}]
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.methods.append(method)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": self.results[method]})


@pytest.fixture
def node() -> ScriptedNode:
    return ScriptedNode()


@pytest.fixture
async def engine(app_config, node) -> AsyncIterator[ChainPayEngine]:
    engine = ChainPayEngine(
        app_config,
        ledger_transport=httpx.MockTransport(node.handle),
        webhook_transport=httpx.MockTransport(lambda request: httpx.Response(204)),
    )
    await engine.initialize()
    yield engine
    await engine.close()


@pytest.fixture
def datastore(engine):
    """Seed fixtures write into the engine's own database."""
    return engine.datastore


@pytest.fixture
async def client(app_config, engine) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(config=app_config, engine=engine)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
