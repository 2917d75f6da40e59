"""Application entry point for the chainpay server."""

from __future__ import annotations

import logging
import os

import uvicorn

from chainpay.config.settings import AppConfig


def main() -> None:
    """Start the chainpay server."""
    config = AppConfig(config_path=os.getenv("CHAINPAY_CONFIG_PATH", ""))
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    reload = os.getenv("CHAINPAY_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "chainpay.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
