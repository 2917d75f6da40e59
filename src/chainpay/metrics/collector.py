"""Metrics collector — Prometheus counters, gauges, histograms.

Exposes:
- ``chainpay_renewals_total`` counter-vec (outcome)
- ``chainpay_renewal_histogram``
- ``chainpay_ledger_retries_total``
- ``chainpay_notifications_total`` counter-vec (outcome)
- ``chainpay_scheduled_jobs`` gauge
- ``chainpay_cron_histogram`` / ``chainpay_cron_last_execution_gauge``
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "chainpay"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level payment engine metrics.

    Histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._renewals = self._collector.counter(
            f"{_PREFIX}_renewals_total",
            "Recurring payment renewals by outcome",
            ("outcome",),
        )
        self._renewal_duration = self._collector.histogram(
            f"{_PREFIX}_renewal_histogram",
            "Duration of recurring payment renewals",
        )
        self._ledger_retries = self._collector.counter(
            f"{_PREFIX}_ledger_retries_total",
            "Event queries that found the transaction not yet indexed",
        )
        self._notifications = self._collector.counter(
            f"{_PREFIX}_notifications_total",
            "Webhook notifications by outcome",
            ("outcome",),
        )
        self._scheduled_jobs = self._collector.gauge(
            f"{_PREFIX}_scheduled_jobs",
            "Armed recurring payment timers",
        )

        self._cron_histogram = self._collector.histogram(
            f"{_PREFIX}_cron_histogram",
            "Duration of cron job executions",
            ("job_name",),
        )
        self._cron_last = self._collector.gauge(
            f"{_PREFIX}_cron_last_execution_gauge",
            "Timestamp of last cron execution",
            ("job_name",),
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    # -- Counters / gauges --

    def inc_renewal(self, outcome: str) -> None:
        """Count one renewal with outcome ``success`` or ``failed``."""
        self._renewals.labels(outcome=outcome).inc()

    def inc_ledger_retry(self) -> None:
        self._ledger_retries.inc()

    def inc_notification(self, outcome: str) -> None:
        """Count one notification: ``delivered``, ``failed`` or ``dropped``."""
        self._notifications.labels(outcome=outcome).inc()

    def set_scheduled_jobs(self, count: int) -> None:
        self._scheduled_jobs.set(count)

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_renewal(self) -> Iterator[None]:
        """Track the duration of a renewal."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._renewal_duration.observe(time.monotonic() - start)

    @contextmanager
    def track_cron(self, job_name: str) -> Iterator[None]:
        """Track the duration of a cron job and record last execution time."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._cron_histogram.labels(job_name=job_name).observe(time.monotonic() - start)
            self._cron_last.labels(job_name=job_name).set(time.time())
