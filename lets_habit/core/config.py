"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Lets Habit Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/lets_habit"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "lets-habit"
    # Calendar days (and so habit periods) are evaluated in this timezone.
    day_timezone: str = "UTC"
    habit_group_max_size: int = 20
    default_heatmap_color: str = "#40c463"
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    reconcile_job_hour: int = 0
    reconcile_job_minute: int = 30
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
