"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - API_KEY holds one or more comma-separated credentials; order is preserved
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box on SQLite
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Credentials — comma-separated pool
    api_key: str = ""

    # Database (preference store)
    database_url: str = "sqlite+aiosqlite:///./keyrelay.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Tiers
    enhanced_model: str = "claude-opus-4-6"
    standard_model: str = "claude-haiku-4-5"

    # Anthropic
    anthropic_timeout_seconds: int = 300
    anthropic_max_tokens: int = 1024

    # Retry / backoff
    backoff_base_delay_ms: int = 2000
    backoff_multiplier: float = 1.5
    override_retry_delay_ms: int = 2000
    max_attempts: int | None = None
    request_deadline_seconds: float | None = None

    # Preference key holding the user's own credential
    override_preference_key: str = "custom_api_key"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
