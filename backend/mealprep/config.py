"""Configuration management for the meal recommendation engine."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    environment: str = "development"
    log_level: str = "info"

    # Recommendations
    ai_enabled: bool = True
    scorer: Literal["delegated", "weighted"] = "delegated"
    default_count_hint: int = 1  # Recipes requested per meal slot
    history_lookback_days: int = 3
    max_prompt_candidates: int = 50

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 30.0
    openai_max_retries: int = 3
    openai_temperature: float = 0.7

    # Supabase (history + operation log)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    audit_backend: Literal["logging", "supabase"] = "logging"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def supabase_enabled(self) -> bool:
        """Check if Supabase is properly configured."""
        return self.supabase_url is not None and self.supabase_service_role_key is not None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
