"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Role Model Schedule Backend"
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://postgres@localhost:5432/rolemodel"
    api_prefix: str = "/api/schedule"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    client_url: str | None = None

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    ai_temperature: float = 0.3
    ai_max_output_tokens: int = 8192
    ai_max_retries: int = 2
    ai_backoff_base_seconds: float = 1.0
    ai_backoff_max_seconds: float = 5.0
    ai_timeout_seconds: float = 60.0

    # Confirmed schedules end this many days after they start.
    schedule_duration_days: int = 1

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "rolemodel-schedule"

    @property
    def allowed_origins(self) -> List[str]:
        origins = list(self.cors_origins)
        if self.client_url and self.client_url not in origins:
            origins.append(self.client_url)
        return origins


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
