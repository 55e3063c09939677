"""Ladder read model."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from ranked_sessions.domain.rankings import LeaderboardEntry, RankingRecord
from ranked_sessions.domain.tiers import get_tier_from_rating
from ranked_sessions.errors import RepositoryError, StorageError, ValidationError
from ranked_sessions.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_TIMEZONE = "Europe/Amsterdam"

PERIOD_ALL_TIME = "all-time"
PERIOD_WEEKLY = "weekly"
PERIODS = (PERIOD_ALL_TIME, PERIOD_WEEKLY)


class LeaderboardRepository(Protocol):
    """Persistence interface for ladder reads."""

    def list_top_rankings(
        self, limit: int, since: datetime | None = None
    ) -> list[RankingRecord]:
        """Return the highest-rated rows, optionally only those active since a time."""


def week_start(now: datetime, timezone: str) -> datetime:
    """Return Monday 00:00 of the week containing ``now`` in the given zone."""
    local = now.astimezone(ZoneInfo(timezone))
    monday = local - timedelta(days=local.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class LeaderboardService:
    """Service for ranked ladder listings."""

    repository: LeaderboardRepository
    max_limit: int = MAX_LIMIT
    timezone: str = DEFAULT_TIMEZONE
    clock: Clock = field(default=utc_now, repr=False)

    def get_leaderboard(
        self,
        limit: int = DEFAULT_LIMIT,
        include_tier: bool = False,
        period: str = PERIOD_ALL_TIME,
    ) -> list[LeaderboardEntry]:
        """Return the top of the ladder ordered by rating, ties by user id.

        The weekly period only lists players with a ranked match since the
        start of the current week in the configured timezone.
        """
        if limit < 1 or limit > self.max_limit:
            raise ValidationError(
                f"limit must be between 1 and {self.max_limit}",
                metadata={"limit": limit},
            )
        if period not in PERIODS:
            raise ValidationError(
                f"Unsupported leaderboard type: {period}",
                metadata={"period": period},
            )
        since = (
            week_start(self.clock(), self.timezone)
            if period == PERIOD_WEEKLY
            else None
        )
        try:
            rows = self.repository.list_top_rankings(limit, since)
        except RepositoryError as exc:
            logger.exception("Failed to fetch %s leaderboard", period)
            raise StorageError(
                "Failed to fetch leaderboard", metadata={"period": period}
            ) from exc
        ordered = sorted(rows, key=lambda row: (-row.rating, str(row.user_id)))
        return [
            LeaderboardEntry(
                rank=index,
                user_id=row.user_id,
                rating=row.rating,
                wins=row.wins,
                losses=row.losses,
                tier=get_tier_from_rating(row.rating) if include_tier else None,
            )
            for index, row in enumerate(ordered[:limit], start=1)
        ]
