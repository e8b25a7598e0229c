"""Configuration settings for the Weave engine API."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Supabase
    supabase_url: str
    # New key system (preferred)
    supabase_secret_key: str | None = None  # Backend/admin access
    supabase_publishable_key: str | None = None  # Client/public access
    # Legacy key (deprecated)
    supabase_service_role_key: str | None = None

    # JWT (Supabase auth tokens: sub = owner id)
    jwt_secret_key: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = "authenticated"
    jwt_expire_minutes: int = 60 * 24  # 1 day, for tokens minted by this service

    # Semantic oracle
    oracle_provider: str = "gateway"  # gateway | openai | anthropic | auto | none
    oracle_model: str = "google/gemini-2.5-flash-lite"
    oracle_base_url: str | None = None
    oracle_api_key: str | None = None
    oracle_timeout_seconds: float = 20.0
    oracle_max_retries: int = 2

    # Rate limits (slowapi syntax)
    rate_limit_engine: str = "20/hour"
    rate_limit_read: str = "120/minute"

    # App
    debug: bool = False
    log_level: str = "INFO"
    engine_event_log: bool = False
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
