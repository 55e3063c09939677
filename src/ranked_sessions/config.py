"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    ranking_enabled: bool = False
    session_auto_complete_after_hours: int = 2
    session_completed_retention_hours: int = 2
    session_lifecycle_batch_size: int = 200
    rating_k_factor: float = 32.0
    rating_scale: float = 400.0
    min_ranked_session_seconds: int = 120
    result_submit_cooldown_seconds: int = 10
    max_ranked_matches_per_opponent: int = 3
    opponent_window_hours: int = 24
    leaderboard_max_limit: int = 100
    leaderboard_timezone: str = "Europe/Amsterdam"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
