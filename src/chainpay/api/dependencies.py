"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("/my-subscriptions")
    async def my_subscriptions(
        user_id: Annotated[str, Depends(require_user_id)],
        engine: Annotated[ChainPayEngine, Depends(get_engine)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from chainpay.engine.client import ChainPayEngine  # noqa: TC001
from chainpay.errors.chainpay_errors import ChainPayError
from chainpay.errors.definitions import ErrUnauthorized

# Set by the upstream authentication layer
USER_ID_HEADER = "x-user-id"


def get_engine(request: Request) -> ChainPayEngine:
    """Retrieve the engine from ``app.state``.

    Raises:
        ChainPayError: 503 if the engine has not been started.
    """
    engine: ChainPayEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise ChainPayError("engine not ready", status_code=503, code="engine-not-ready")
    return engine


def require_user_id(
    x_user_id: Annotated[str, Header(alias=USER_ID_HEADER)] = "",
) -> str:
    """Return the caller's user id.

    Raises:
        ChainPayError: 401 if the header is missing.
    """
    if not x_user_id:
        raise ErrUnauthorized
    return x_user_id


EngineDep = Annotated[ChainPayEngine, Depends(get_engine)]
UserIdDep = Annotated[str, Depends(require_user_id)]
