from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Eden Sync API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///data/eden.db"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Homelab API
    homelab_api_url: str = "http://localhost:3001/api"
    homelab_api_key: str = ""
    homelab_timeout_seconds: float = 10.0
    homelab_retry_attempts: int = 3
    homelab_retry_delay_seconds: float = 1.0

    # Polling intervals (seconds) per resource class
    poll_system_metrics_seconds: float = 5.0
    poll_services_seconds: float = 30.0
    poll_network_devices_seconds: float = 60.0
    poll_storage_seconds: float = 120.0
    poll_automation_rules_seconds: float = 60.0
    poll_security_alerts_seconds: float = 10.0

    # Persistence
    autosave_interval_seconds: float = 60.0
    cache_ttl_seconds: float = 300.0
    error_log_max_entries: int = 100

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine — SQL queries
    log_level_http: str = "WARNING"          # httpx / httpcore — outbound HTTP
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_storage: str = "INFO"          # entity store, backends, change sync
    log_level_homelab: str = "INFO"          # homelab client and polling

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
