"""SchoolHub settings, read from the environment or a local ``.env`` file."""
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """One settings object for every service and the ``schoolhub`` CLI."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    database_url: str = Field(
        default="sqlite:///./schoolhub.db",
        description="SQLAlchemy URL of the bookings database; SQLite for local work, Postgres when hosted.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Create missing tables when a service starts.",
    )

    # Accounts and service-to-service calls
    jwt_secret: str = Field(default="change-me", description="Secret used to sign staff access tokens")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60, ge=1, description="Lifetime of a staff access token")
    service_api_key: str = Field(
        default="service-key",
        description="Value the scheduler must send in X-Service-Key to trigger maintenance sweeps",
    )

    # HTTP surface
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    default_rate_limit: str = Field(default="30/minute", description="Limit for routes without their own rule")
    rate_limiting_enabled: bool = Field(default=True, description="Turn SlowAPI off, e.g. under test")
    classroom_cache_ttl: int = Field(default=60, description="Seconds a classroom listing stays cached")

    # Maintenance
    sweep_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Pause between maintenance sweep runs when the sweep runner loops.",
    )

    # Logging
    log_dir: str = Field(default="logs", description="Directory for per-service audit logs")
    log_level: str = Field(default="INFO", description="Level for the audit and application loggers")

    users_service_port: int = 8001
    classrooms_service_port: int = 8002
    bookings_service_port: int = 8003
    maintenance_service_port: int = 8004


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reset_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()
