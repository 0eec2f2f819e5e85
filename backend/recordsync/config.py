import json
import logging
from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

_config_logger = logging.getLogger(__name__)

_SETTINGS_FILE = Path("data/settings.json")
_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)
_RUNTIME_KEYS = frozenset({
    "watcher_poll_interval_seconds",
    "db_schema",
})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Test Automation Sync API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    database_url: str = "sqlite:///./test_automation.db"
    db_schema: str = ""                      # empty → store's default schema
    cors_origins: list[str] = ["http://localhost:3020"]

    # Database watcher
    watcher_autostart: bool = True
    watcher_poll_interval_seconds: float = 3.0
    watcher_initial_delay_seconds: float = 1.0
    watcher_emit_initial_snapshot: bool = False
    event_queue_size: int = 100

    # Shared record cache / background preload
    cache_significant_threshold: int = 100
    preload_enabled: bool = True
    preload_batch_size: int = 10
    preload_pause_ms: int = 100

    # Logging — per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine — SQL queries
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error
    log_level_watcher: str = "INFO"          # DatabaseWatcher sampling passes
    log_level_cache: str = "INFO"            # RecordCache / loader / preloader

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def model_post_init(self, __context: object) -> None:
        """Merge runtime overrides from data/settings.json into watcher settings."""
        if _SETTINGS_FILE.exists():
            try:
                overrides = json.loads(_SETTINGS_FILE.read_text("utf-8"))
                for key in _RUNTIME_KEYS:
                    if key not in overrides:
                        continue
                    current = getattr(self, key)
                    value = type(current)(overrides[key])
                    object.__setattr__(self, key, value)
            except Exception as exc:
                _config_logger.warning("Could not load settings overrides: %s", exc)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
