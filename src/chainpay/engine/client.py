"""ChainPayEngine — central engine client owning all services."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from chainpay.config.settings import AppConfig
    from chainpay.datastore.client import Datastore
    from chainpay.engine.repository import Repositories
    from chainpay.ledger.client import LedgerClient
    from chainpay.ledger.gateway import LedgerGateway
    from chainpay.metrics.collector import EngineMetrics
    from chainpay.notifications.service import Notifier
    from chainpay.notifications.webhook import WebhookDeliverer
    from chainpay.subscriptions.bootstrap import Bootstrapper
    from chainpay.subscriptions.intake import PaymentIntake
    from chainpay.subscriptions.renewal import RenewalEngine
    from chainpay.subscriptions.results import BootstrapReport
    from chainpay.subscriptions.scheduler import PaymentScheduler
    from chainpay.subscriptions.unsubscribe import UnsubscribeHandler
    from chainpay.taskmanager.manager import TaskManager

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class ChainPayEngine:
    """Central engine that owns infrastructure and payment services.

    Provides lifecycle management and a service registry. Initialization
    opens the datastore, connects the ledger, starts the notifier, restores
    scheduled payments and starts the overdue sweep.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        ledger_transport: httpx.AsyncBaseTransport | None = None,
        webhook_transport: httpx.AsyncBaseTransport | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            ledger_transport: Optional httpx transport for the ledger RPC.
            webhook_transport: Optional httpx transport for webhook delivery.
            metrics: Metrics to record into; created from config when omitted.
        """
        self._config = config
        self._ledger_transport = ledger_transport
        self._webhook_transport = webhook_transport
        self._initialized = False

        # Infrastructure components
        self._datastore: Datastore | None = None
        self._repos: Repositories | None = None
        self._ledger_client: LedgerClient | None = None
        self._gateway: LedgerGateway | None = None
        self._deliverer: WebhookDeliverer | None = None
        self._metrics: EngineMetrics | None = metrics

        # Services
        self._notifier: Notifier | None = None
        self._scheduler: PaymentScheduler | None = None
        self._unsubscribe: UnsubscribeHandler | None = None
        self._renewal: RenewalEngine | None = None
        self._bootstrapper: Bootstrapper | None = None
        self._intake: PaymentIntake | None = None
        self._task_manager: TaskManager | None = None
        self._bootstrap_report: BootstrapReport | None = None

    async def initialize(self) -> None:
        """Open the datastore, connect clients and start background services.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        from chainpay.datastore.client import Datastore
        from chainpay.datastore.migrations import run_auto_migrate
        from chainpay.engine.repository import Repositories

        self._datastore = Datastore(self._config.db)
        await self._datastore.open()
        await run_auto_migrate(self._datastore.engine)
        self._repos = Repositories.from_datastore(self._datastore)

        if self._metrics is None and self._config.metrics.enabled:
            from chainpay.metrics.collector import EngineMetrics

            self._metrics = EngineMetrics()

        # Ledger access
        from chainpay.ledger.client import LedgerClient
        from chainpay.ledger.gateway import LedgerGateway
        from chainpay.ledger.signer import LedgerSigner

        ledger_config = self._config.ledger
        self._ledger_client = LedgerClient(ledger_config, transport=self._ledger_transport)
        await self._ledger_client.connect()
        signer = LedgerSigner.from_secret(ledger_config.secret_key) if ledger_config.secret_key else None
        if signer is None:
            logger.warning("No server signing key configured; scheduled renewals will fail")
        self._gateway = LedgerGateway(
            self._ledger_client, ledger_config, signer=signer, metrics=self._metrics
        )

        # Notifications
        from chainpay.notifications.service import Notifier
        from chainpay.notifications.webhook import WebhookDeliverer

        notifications = self._config.notifications
        self._deliverer = WebhookDeliverer(
            self._repos.webhooks,
            timeout=notifications.delivery_timeout,
            metrics=self._metrics,
            transport=self._webhook_transport,
        )
        await self._deliverer.connect()
        self._notifier = Notifier(
            self._deliverer,
            self._repos.webhooks,
            queue_size=notifications.queue_size,
            enabled=notifications.enabled,
            metrics=self._metrics,
        )
        await self._notifier.start()

        # Subscription services; the scheduler learns its renewal handler last
        from chainpay.subscriptions.bootstrap import Bootstrapper
        from chainpay.subscriptions.intake import PaymentIntake
        from chainpay.subscriptions.renewal import RenewalEngine
        from chainpay.subscriptions.scheduler import PaymentScheduler
        from chainpay.subscriptions.unsubscribe import UnsubscribeHandler

        self._scheduler = PaymentScheduler(self._repos.intents, metrics=self._metrics)
        self._unsubscribe = UnsubscribeHandler(
            self._repos,
            self._gateway,
            self._notifier,
            self._scheduler,
            active_subscription_registry=ledger_config.active_subscription_registry,
        )
        self._renewal = RenewalEngine(
            self._repos,
            self._gateway,
            self._notifier,
            self._unsubscribe,
            clock_object_id=ledger_config.clock_object_id,
            metrics=self._metrics,
        )
        self._scheduler.set_renewal_handler(self._renewal.process_renewal)
        self._bootstrapper = Bootstrapper(self._repos.intents, self._scheduler, self._renewal)
        self._intake = PaymentIntake(
            self._repos, self._gateway, self._notifier, self._scheduler, self._unsubscribe
        )

        scheduler_config = self._config.scheduler
        if scheduler_config.enabled:
            if scheduler_config.bootstrap_on_start:
                self._bootstrap_report = await self._bootstrapper.run()

            from chainpay.taskmanager.manager import CronJob, TaskManager
            from chainpay.taskmanager.tasks import task_overdue_sweep

            self._task_manager = TaskManager(metrics=self._metrics)
            self._task_manager.register(
                "overdue_sweep",
                CronJob(
                    handler=partial(task_overdue_sweep, self._repos.intents, self._scheduler),
                    period=scheduler_config.sweep_period,
                ),
            )
            await self._task_manager.start()

        self._initialized = True

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        if self._scheduler is not None:
            await self._scheduler.shutdown()
            self._scheduler = None

        if self._notifier is not None:
            await self._notifier.stop()
            self._notifier = None
        if self._deliverer is not None:
            await self._deliverer.close()
            self._deliverer = None

        self._intake = None
        self._bootstrapper = None
        self._renewal = None
        self._unsubscribe = None
        self._gateway = None

        if self._ledger_client is not None:
            await self._ledger_client.close()
            self._ledger_client = None

        self._repos = None
        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def repos(self) -> Repositories:
        if self._repos is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._repos

    @property
    def gateway(self) -> LedgerGateway:
        if self._gateway is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._gateway

    @property
    def notifier(self) -> Notifier:
        if self._notifier is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._notifier

    @property
    def scheduler(self) -> PaymentScheduler:
        if self._scheduler is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._scheduler

    @property
    def unsubscribe(self) -> UnsubscribeHandler:
        if self._unsubscribe is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._unsubscribe

    @property
    def renewal(self) -> RenewalEngine:
        if self._renewal is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._renewal

    @property
    def intake(self) -> PaymentIntake:
        if self._intake is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._intake

    @property
    def metrics(self) -> EngineMetrics | None:
        """Get the engine metrics (None if disabled or not initialized)."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Get the task manager (None if the scheduler is disabled)."""
        return self._task_manager

    @property
    def bootstrap_report(self) -> BootstrapReport | None:
        """Report of the start-up bootstrap, if one ran."""
        return self._bootstrap_report

    async def health_check(self) -> dict[str, str]:
        """Check health status of engine components.

        Returns:
            Dictionary with component statuses ('ok', 'error', 'not_initialized').
        """
        status = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "unknown",
            "ledger": "unknown",
            "notifier": "unknown",
        }

        if self._initialized:
            status["datastore"] = "ok" if self._datastore and await self._datastore.ping() else "error"
            status["ledger"] = (
                "ok" if self._ledger_client and self._ledger_client.is_connected else "not_connected"
            )
            status["notifier"] = "ok" if self._notifier and self._notifier.is_running else "stopped"

        return status
