"""Tests for the ChainPayEngine lifecycle and service registry."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from chainpay.config.settings import AppConfig, DatabaseConfig, SchedulerConfig
from chainpay.engine.client import ChainPayEngine
from chainpay.metrics.collector import EngineMetrics


class TestLifecycle:
    async def test_initialize_and_close(self, app_config):
        engine = ChainPayEngine(app_config)
        assert not engine.is_initialized

        await engine.initialize()
        try:
            assert engine.is_initialized
            assert engine.datastore.is_open
            assert engine.notifier.is_running
            assert engine.gateway.package_id == "0xpkg"
            assert engine.task_manager is None
            assert engine.bootstrap_report is None
        finally:
            await engine.close()
        assert not engine.is_initialized

    async def test_initialize_creates_tables(self, app_config):
        engine = ChainPayEngine(app_config)
        await engine.initialize()
        try:
            assert await engine.repos.products.get("0xnone") is None
            assert await engine.repos.intents.find_many() == []
        finally:
            await engine.close()

    async def test_double_initialize_raises(self, app_config):
        engine = ChainPayEngine(app_config)
        await engine.initialize()
        try:
            with pytest.raises(RuntimeError, match="already initialized"):
                await engine.initialize()
        finally:
            await engine.close()

    async def test_close_is_idempotent(self, app_config):
        engine = ChainPayEngine(app_config)
        await engine.close()
        await engine.initialize()
        await engine.close()
        await engine.close()

    @pytest.mark.parametrize(
        "prop", ["datastore", "repos", "gateway", "notifier", "scheduler", "unsubscribe", "renewal", "intake"]
    )
    def test_services_require_initialize(self, app_config, prop):
        engine = ChainPayEngine(app_config)
        with pytest.raises(RuntimeError, match="not initialized"):
            getattr(engine, prop)

    async def test_injected_metrics_are_used(self, app_config):
        metrics = EngineMetrics()
        engine = ChainPayEngine(app_config, metrics=metrics)
        await engine.initialize()
        try:
            assert engine.metrics is metrics
        finally:
            await engine.close()

    async def test_metrics_disabled(self, app_config):
        app_config.metrics.enabled = False
        engine = ChainPayEngine(app_config)
        await engine.initialize()
        try:
            assert engine.metrics is None
        finally:
            await engine.close()


class TestHealthCheck:
    async def test_before_initialize(self, app_config):
        status = await ChainPayEngine(app_config).health_check()
        assert status["engine"] == "not_initialized"
        assert status["datastore"] == "unknown"

    async def test_after_initialize(self, app_config):
        engine = ChainPayEngine(app_config)
        await engine.initialize()
        try:
            status = await engine.health_check()
        finally:
            await engine.close()
        assert status == {"engine": "ok", "datastore": "ok", "ledger": "ok", "notifier": "ok"}


class TestSchedulerStartup:
    @pytest.fixture
    def app_config(self, app_config, tmp_path) -> AppConfig:
        # a file database survives between the seeding datastore and the engine
        app_config.db = DatabaseConfig(dsn=f"sqlite+aiosqlite:///{tmp_path / 'chainpay.db'}")
        app_config.scheduler = SchedulerConfig(enabled=True, sweep_period=3600)
        return app_config

    async def test_bootstrap_restores_timers_and_starts_sweep(self, app_config, make_intent):
        due = datetime.now(tz=UTC) + timedelta(days=10)
        await make_intent(next_payment_due=due)

        engine = ChainPayEngine(app_config)
        await engine.initialize()
        try:
            report = engine.bootstrap_report
            assert report is not None
            assert (report.total, report.scheduled, report.renewed, report.failed) == (1, 1, 0, 0)
            assert engine.scheduler.next_run("0xintent_1") == due
            assert engine.task_manager is not None
            assert engine.task_manager.is_running
            assert "overdue_sweep" in engine.task_manager.jobs
        finally:
            await engine.close()
