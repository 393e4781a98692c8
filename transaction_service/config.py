"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("TXN_ENV", "dev").lower()


class Settings(BaseSettings):
    """Environment configuration for the transaction service."""

    app_env: str = ENV
    database_url: str = "sqlite:///transactions.db"
    LOG_LEVEL: str = "INFO"
    ALLOW_DB_CREATE_ALL: bool = True

    # --- Balance handling -------------------------------------------------
    # Take a row lock on the account before projecting its balance.
    ACCOUNT_ROW_LOCKING: bool = False
    # Pending transactions on accounts without an available balance keep the
    # ledger balance unchanged unless this is enabled.
    PROJECT_PENDING_ON_LEDGER_BALANCE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


class AppInfo(BaseModel):
    name: str = "transaction-service"
    version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


__all__ = ["ENV", "Settings", "AppInfo", "get_settings"]
