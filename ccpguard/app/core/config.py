"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without failing
    )

    # App
    app_name: str = "CCP Guard"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    # Secret key MUST be provided via environment (e.g. SECRET_KEY in .env)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./ccpguard.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Notifications
    manager_role: str = "manager"
    operations_mailbox: str = "management@chaipatta.com"

    # Severity thresholds (percent deviation from the critical limit)
    severity_critical_pct: float = 20.0
    severity_major_pct: float = 10.0

    # Evidence photos for corrective actions
    evidence_dir: str = "./evidence"
    evidence_base_url: str = "/evidence"

    # Denormalised operation reports
    default_location_id: str = "default"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
