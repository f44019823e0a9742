"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Timelit Scheduler"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://timelit@localhost:5432/timelit"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "timelit"
    default_timezone: str = "UTC"
    scheduling_horizon_days: int = 7
    scheduling_max_horizon_days: int = 14
    scheduling_slot_strategy: str = "gap"
    scheduling_weights_profile: str = "smart"
    backlog_job_enabled: bool = False
    backlog_job_interval_minutes: int = 60
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
