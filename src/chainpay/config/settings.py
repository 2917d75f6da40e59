"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``CHAINPAY_``, nested via ``__``)
2. YAML config file (``CHAINPAY_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class Network(enum.StrEnum):
    """Sui network the full node belongs to."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"
    LOCALNET = "localnet"


_FULLNODE_URLS = {
    Network.MAINNET: "https://fullnode.mainnet.sui.io:443",
    Network.TESTNET: "https://fullnode.testnet.sui.io:443",
    Network.DEVNET: "https://fullnode.devnet.sui.io:443",
    Network.LOCALNET: "http://127.0.0.1:9000",
}


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3001


class DatabaseConfig(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./chainpay.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class LedgerConfig(BaseSettings):
    """Sui full node and on-chain package settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_LEDGER__",
        case_sensitive=False,
    )

    network: Network = Network.DEVNET
    rpc_url: str = ""
    package_id: str = ""
    secret_key: str = Field(default="", description="Server Ed25519 seed (hex or base64)")
    active_subscription_registry: str = ""
    clock_object_id: str = "0x6"
    gas_budget: int = 50_000_000
    max_retries: int = 5
    initial_delay: float = 0.5  # seconds
    request_timeout: float = 30.0

    @property
    def effective_rpc_url(self) -> str:
        """Return the configured RPC URL, falling back to the network default."""
        return self.rpc_url or _FULLNODE_URLS[self.network]


class NotificationsConfig(BaseSettings):
    """Webhook notification settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_NOTIFICATIONS__",
        case_sensitive=False,
    )

    enabled: bool = True
    queue_size: int = 1000
    delivery_timeout: float = 10.0
    currency: str = "MIST"


class SchedulerConfig(BaseSettings):
    """Recurring payment scheduler settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_SCHEDULER__",
        case_sensitive=False,
    )

    enabled: bool = True
    bootstrap_on_start: bool = True
    sweep_period: float = 60.0  # seconds


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``CHAINPAY_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAINPAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                merged = {**val, **values[key]}
                values[key] = merged
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
