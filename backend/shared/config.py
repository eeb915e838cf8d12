"""
Centralized configuration for the Tripsplit backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., SUPABASE_*, SOCKET_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Tripsplit API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""  # direct Postgres URL, migrations only

    # Token signing
    join_token_secret: str = ""
    session_jwt_secret: str = ""
    jwt_algorithm: str = "HS256"

    # Admission
    join_token_ttl_seconds: int = 5 * 60
    session_token_ttl_days: int = 30
    password_hash_rounds: int = 10
    membership_update_retries: int = 5

    # Expiration
    inactivity_window_days: int = 5
    leader_departure_grace_hours: int = 3
    min_timezone_offset_minutes: int = -12 * 60
    max_timezone_offset_minutes: int = 14 * 60

    # Socket server notifications
    socket_url: str = "http://127.0.0.1:4000"
    socket_secret: str = ""
    notify_timeout_seconds: float = 3.0
    notify_max_retries: int = 3
    notify_backoff_base_seconds: float = 0.25

    # Rate limiting (limits library notation)
    enable_rate_limiting: bool = True
    rate_limit_storage_uri: str = "async+memory://"
    rate_limit_general: str = "200/minute"
    rate_limit_mutations: str = "20/minute"
    rate_limit_auth: str = "5 per 10 minutes"
    rate_limit_join: str = "3/hour"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
