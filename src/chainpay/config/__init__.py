"""Configuration — pydantic-settings tree loaded from env vars and YAML."""

from __future__ import annotations

from chainpay.config.settings import AppConfig

__all__ = ["AppConfig"]
