"""Application configuration via pydantic-settings.

Loads all settings from environment variables with sensible defaults.
A global `settings` singleton is available for import throughout the app;
services receive the values they need through their constructors so tests
can build them with explicit arguments.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Backend
    BACKEND_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Demo mode: every gateway call is served from in-memory fixtures
    DEMO_MODE: bool = False

    # Session
    SESSION_TTL_HOURS: int = 24
    SESSION_CHECK_INTERVAL_SECONDS: int = 60
    SESSION_TOKEN_FILE: str = ""

    # Live update channel
    SSE_RECONNECT_INTERVAL_SECONDS: float = 5.0
    SSE_MAX_RETRIES: int = 5
    SSE_AUTOSTART: bool = True

    # Candidate store
    STORE_REJECT_STALE_MERGES: bool = False

    # CORS
    ALLOWED_ORIGINS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
