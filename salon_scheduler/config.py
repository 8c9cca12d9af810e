# salon_scheduler/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/sqlite/scheduler.db"
    redis_url: str = "redis://localhost:6379/0"

    events_enabled: bool = True
    events_queue: str = "events:appointments"

    default_timezone: str = "Pacific/Auckland"
    conflict_retry_attempts: int = 3
    max_undo_window_seconds: int = 300

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # relative sqlite path -> absolute, anchored at the repo root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
