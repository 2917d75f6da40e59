"""Webhook delivery — one signed POST per observer, no retries."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from chainpay.engine.repository.catalog import WebhookRepository
    from chainpay.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-ChainPay-Signature"


def sign_payload(secret: str, body: bytes) -> str:
    """Return the ``sha256=<hex>`` HMAC of *body* keyed by *secret*."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookDeliverer:
    """Delivers payloads to registered webhooks.

    A delivery is a single attempt: failures are logged and counted, never
    retried and never raised.
    """

    def __init__(
        self,
        webhooks: WebhookRepository,
        *,
        timeout: float = 10.0,
        metrics: EngineMetrics | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhooks = webhooks
        self._timeout = timeout
        self._metrics = metrics
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def deliver(self, webhook_id: str, payload: dict[str, Any]) -> bool:
        """POST *payload* to webhook *webhook_id*.

        Returns:
            True if the endpoint answered with a non-error status.
        """
        if self._client is None:
            logger.warning("Webhook deliverer not connected; dropping %s", payload.get("event"))
            return False

        webhook = await self._webhooks.get(webhook_id)
        if webhook is None:
            logger.warning("Webhook %s no longer exists", webhook_id)
            return False

        body = json.dumps(payload, separators=(",", ":")).encode()
        headers = {"Content-Type": "application/json"}
        if webhook.secret:
            headers[SIGNATURE_HEADER] = sign_payload(webhook.secret, body)

        try:
            response = await self._client.post(webhook.url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Webhook %s delivery error: %s", webhook.url, exc)
            self._count("failed")
            return False

        if response.status_code >= 400:
            logger.warning("Webhook %s returned %d", webhook.url, response.status_code)
            self._count("failed")
            return False

        logger.debug("Delivered %s to %s", payload.get("event"), webhook.url)
        self._count("delivered")
        return True

    def _count(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.inc_notification(outcome)
