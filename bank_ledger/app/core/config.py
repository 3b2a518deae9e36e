from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Bank Ledger API"
    # postgresql:// URLs are rewritten to postgresql+psycopg://
    database_url: str = "sqlite:///bank_ledger.db"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    # seconds a SQLite connection waits for the write lock
    sqlite_busy_timeout: float = 30.0
    allow_balance_override: bool = False
    conflict_retry_attempts: int = 3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BANK_LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
