"""Supabase-backed ranking repository."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client, PostgrestAPIError

from ranked_sessions.adapters.supabase_common import (
    execute,
    parse_timestamp,
    to_iso,
)
from ranked_sessions.domain.rankings import DEFAULT_RATING, RankingRecord, RatingChange
from ranked_sessions.errors import (
    AppError,
    ErrorCodes,
    ForbiddenError,
    NotFoundError,
    RepositoryConflictError,
    RepositoryError,
    SessionNotActiveError,
    ValidationError,
)
from ranked_sessions.services.leaderboard import LeaderboardRepository
from ranked_sessions.services.rankings import RankingRepository

_RANKING_COLUMNS = "user_id, rating, wins, losses, last_ranked_match_at"
_UNIQUE_VIOLATION = "23505"
_CONFLICT_MARKERS = ("MATCH_RESULT_EXISTS", "RATING_CONFLICT")


def _session_context(session_id: UUID) -> dict[str, object]:
    return {"session_id": str(session_id)}


# Rejections raised by apply_ranked_match_result while it holds the session lock.
_REJECTIONS: dict[str, Callable[[UUID], AppError]] = {
    "SESSION_NOT_FOUND": lambda session_id: NotFoundError(
        "Session", session_id, ErrorCodes.SESSION_NOT_FOUND
    ),
    "RANKING_FORBIDDEN": lambda session_id: ForbiddenError(
        "Only the host can submit ranked results", _session_context(session_id)
    ),
    "RANKED_REQUIRED": lambda session_id: ValidationError(
        "Match result submission is only available for ranked sessions",
        _session_context(session_id),
    ),
    "INVALID_STATUS": lambda session_id: SessionNotActiveError(
        "Session must be active or completed to submit ranked results",
        _session_context(session_id),
    ),
    "INSUFFICIENT_PARTICIPANTS": lambda session_id: ValidationError(
        "Ranked result submission requires at least 2 joined participants",
        _session_context(session_id),
    ),
    "INVALID_PARTICIPANT": lambda session_id: ValidationError(
        "winner_id and loser_id must be joined participants in this session",
        _session_context(session_id),
    ),
}


@dataclass
class SupabaseRankingRepository(RankingRepository, LeaderboardRepository):
    """Supabase implementation for ladder rows and match results."""

    client: Client

    def ensure_ranking(self, user_id: UUID) -> None:
        """Insert a default ranking row unless one exists."""
        execute(
            self.client.table("user_rankings").upsert(
                {
                    "user_id": str(user_id),
                    "rating": DEFAULT_RATING,
                    "wins": 0,
                    "losses": 0,
                },
                on_conflict="user_id",
                ignore_duplicates=True,
            ),
            "Failed to ensure user ranking row",
        )

    def get_rankings(self, user_ids: list[UUID]) -> list[RankingRecord]:
        """Return ranking rows for the given users."""
        response = execute(
            self.client.table("user_rankings")
            .select(_RANKING_COLUMNS)
            .in_("user_id", [str(user_id) for user_id in user_ids]),
            "Failed to load rankings",
        )
        return [_to_ranking(row) for row in response.data or []]

    def count_recent_matches_between(
        self, user_a: UUID, user_b: UUID, since: datetime
    ) -> int:
        """Return ranked results between two users recorded since a time."""
        response = execute(
            self.client.rpc(
                "count_recent_ranked_matches_between_users",
                {
                    "p_user_a": str(user_a),
                    "p_user_b": str(user_b),
                    "p_window_start": to_iso(since),
                },
            ),
            "Failed anti-abuse opponent check",
        )
        return int(response.data or 0)

    def apply_match_result(
        self,
        session_id: UUID,
        changes: list[RatingChange],
        occurred_at: datetime,
        submitted_by: UUID,
    ) -> None:
        """Persist every change in one database transaction."""
        query = self.client.rpc(
            "apply_ranked_match_result",
            {
                "p_session_id": str(session_id),
                "p_changes": [
                    {
                        "user_id": str(change.user_id),
                        "previous_rating": change.previous_rating,
                        "rating": change.rating,
                        "wins": change.wins,
                        "losses": change.losses,
                        "delta": change.delta,
                    }
                    for change in changes
                ],
                "p_occurred_at": to_iso(occurred_at),
                "p_submitted_by": str(submitted_by),
            },
        )
        try:
            query.execute()
        except PostgrestAPIError as exc:
            message = exc.message or ""
            for marker, rejection in _REJECTIONS.items():
                if marker in message:
                    raise rejection(session_id) from exc
            if exc.code == _UNIQUE_VIOLATION or any(
                marker in message for marker in _CONFLICT_MARKERS
            ):
                raise RepositoryConflictError(message) from exc
            raise RepositoryError(
                f"Failed to apply ranked match result: {message}"
            ) from exc

    def list_top_rankings(
        self, limit: int, since: datetime | None = None
    ) -> list[RankingRecord]:
        """Return the highest-rated rows, optionally only recently active ones."""
        query = self.client.table("user_rankings").select(_RANKING_COLUMNS)
        if since is not None:
            query = query.gte("last_ranked_match_at", to_iso(since))
        response = execute(
            query.order("rating", desc=True).order("user_id").limit(limit),
            "Failed to fetch leaderboard",
        )
        return [_to_ranking(row) for row in response.data or []]


def _to_ranking(row: dict[str, object]) -> RankingRecord:
    return RankingRecord(
        user_id=UUID(str(row["user_id"])),
        rating=int(row["rating"]),
        wins=int(row.get("wins") or 0),
        losses=int(row.get("losses") or 0),
        last_ranked_match_at=parse_timestamp(row.get("last_ranked_match_at")),
    )
