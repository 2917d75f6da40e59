"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from chainpay import __version__
from chainpay.api.middleware.cors import setup_cors
from chainpay.api.routes import subscription_router
from chainpay.config.settings import AppConfig
from chainpay.engine.client import ChainPayEngine
from chainpay.errors.chainpay_errors import ChainPayError
from chainpay.metrics.collector import EngineMetrics
from chainpay.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the engine on startup and shut it down on exit."""
    config: AppConfig = app.state.config
    engine: ChainPayEngine = getattr(app.state, "engine", None) or ChainPayEngine(
        config, metrics=app.state.metrics
    )
    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("ChainPay engine initialized")
        yield
    finally:
        await engine.close()
        logger.info("ChainPay engine shut down")


def create_app(*, config: AppConfig | None = None, engine: ChainPayEngine | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
        engine: Optional pre-built (not yet initialized) engine.
    """
    if config is None:
        config = engine.config if engine is not None else AppConfig()

    app = FastAPI(
        title="chainpay",
        version=__version__,
        description="Sui payment and subscription backend",
        lifespan=_lifespan,
    )
    app.state.config = config
    app.state.metrics = EngineMetrics() if config.metrics.enabled else None
    if engine is not None:
        app.state.engine = engine

    # -- Middleware --
    setup_cors(app)
    if app.state.metrics is not None:
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    # -- Error handler --
    @app.exception_handler(ChainPayError)
    async def _chainpay_error_handler(request: Request, exc: ChainPayError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        metrics: EngineMetrics | None = app.state.metrics
        body = generate_latest(metrics.registry) if metrics else generate_latest()
        return Response(content=body, media_type="text/plain; version=0.0.4; charset=utf-8")

    app.include_router(subscription_router)
    return app
