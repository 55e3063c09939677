"""Dependency container wiring for the application."""

from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from ranked_sessions.adapters.supabase_ranking_repository import (
    SupabaseRankingRepository,
)
from ranked_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from ranked_sessions.config import Settings
from ranked_sessions.services.leaderboard import LeaderboardService
from ranked_sessions.services.lifecycle import SessionLifecycleService
from ranked_sessions.services.metrics import InMemoryMetrics
from ranked_sessions.services.rankings import RankingService
from ranked_sessions.services.rate_limit import InMemorySubmissionRateLimiter
from ranked_sessions.services.rating import EloParameters


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    metrics: InMemoryMetrics
    ranking_service: RankingService
    lifecycle_service: SessionLifecycleService
    leaderboard_service: LeaderboardService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    ranking_repository = SupabaseRankingRepository(supabase_client)
    metrics = InMemoryMetrics()
    ranking_service = RankingService(
        ranking_repository=ranking_repository,
        session_repository=session_repository,
        rate_limiter=InMemorySubmissionRateLimiter(
            cooldown=timedelta(seconds=resolved_settings.result_submit_cooldown_seconds)
        ),
        metrics=metrics,
        enabled=resolved_settings.ranking_enabled,
        elo=EloParameters(
            k_factor=resolved_settings.rating_k_factor,
            scale_factor=resolved_settings.rating_scale,
        ),
        min_session_duration=timedelta(
            seconds=resolved_settings.min_ranked_session_seconds
        ),
        max_matches_per_opponent=resolved_settings.max_ranked_matches_per_opponent,
        opponent_window=timedelta(hours=resolved_settings.opponent_window_hours),
    )
    lifecycle_service = SessionLifecycleService(
        repository=session_repository,
        auto_complete_after_hours=resolved_settings.session_auto_complete_after_hours,
        completed_retention_hours=resolved_settings.session_completed_retention_hours,
        batch_size=resolved_settings.session_lifecycle_batch_size,
    )
    leaderboard_service = LeaderboardService(
        repository=ranking_repository,
        max_limit=resolved_settings.leaderboard_max_limit,
        timezone=resolved_settings.leaderboard_timezone,
    )
    return AppContainer(
        settings=resolved_settings,
        metrics=metrics,
        ranking_service=ranking_service,
        lifecycle_service=lifecycle_service,
        leaderboard_service=leaderboard_service,
    )
