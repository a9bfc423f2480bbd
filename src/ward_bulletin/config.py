# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads database, rate limit, save workflow, and logging settings from env and .env file.

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (empty host disables the remote record service)
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "wardbulletin"
    db_user: str = "wardbulletin"
    db_password: SecretStr | None = None
    db_pool_size: int = 5
    db_pool_max_overflow: int = 10
    database_url_override: str | None = None  # e.g. sqlite+aiosqlite:///local.db

    @property
    def database_configured(self) -> bool:
        """Whether enough is set to reach a database."""
        return bool(self.database_url_override or (self.db_host and self.db_name))

    @property
    def database_url(self) -> str:
        """Build async database connection URL."""
        if self.database_url_override:
            return self.database_url_override
        password = self.db_password.get_secret_value() if self.db_password else ""
        return f"postgresql+asyncpg://{self.db_user}:{password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Rate limiting
    lenient_rate_limit_requests: int = 100
    lenient_rate_limit_window_seconds: int = 15 * 60
    strict_rate_limit_requests: int = 10
    strict_rate_limit_window_seconds: int = 60
    rate_limit_sweep_interval_seconds: int = 60

    # Save workflow
    save_timeout_seconds: float = 10.0
    save_max_attempts: int = 3
    save_retry_base_seconds: float = 1.0
    save_retry_max_wait_seconds: float = 30.0
    read_timeout_seconds: float = 10.0

    # Local state (drafts, templates, offline bulletins)
    data_dir: Path = Path("data")

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    # Web
    app_base_url: str = "http://localhost:8000"
    public_cache_control: str = "s-maxage=60, stale-while-revalidate=300"
    # Proxies whose X-Forwarded-For is trusted by uvicorn (comma separated, "*" for any)
    forwarded_allow_ips: str = "127.0.0.1"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables and .env file.
    """
    return Settings()
