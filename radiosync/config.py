"""Application settings loaded from .env via pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration. Values come from environment / .env file."""

    # Station
    station_api_base_url: str = "https://hits93toronto.com:2490/api/v2"
    primary_stream_url: str = "https://hits93toronto.com:2955/stream"
    default_timezone: str = "America/Toronto"

    # Enrichment
    enrichment_search_url: str = "https://itunes.apple.com/search"
    enrichment_concurrency: int = 4

    # HTTP
    api_timeout_seconds: float = 10.0

    # Paging / polling
    history_batch_size: int = 50
    now_playing_limit: int = 8
    schedule_days_to_fetch: int = 7
    next_programmes_count: int = 5
    poll_interval_seconds: float = 10.0

    # Storage
    db_path: str = "./data/radiosync.db"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def db_abs_path(self) -> Path:
        """Return the database path as an absolute Path, creating parents if needed."""
        p = Path(self.db_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p.resolve()


@lru_cache
def get_settings() -> Settings:
    """Cached singleton so .env is read only once."""
    return Settings()
