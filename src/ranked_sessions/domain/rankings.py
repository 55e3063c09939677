"""Domain models for the ranked ladder."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from ranked_sessions.domain.tiers import Tier, get_tier_from_rating

DEFAULT_RATING = 1000


@dataclass(frozen=True)
class RankingRecord:
    """A user's persisted ladder standing."""

    user_id: UUID
    rating: int = DEFAULT_RATING
    wins: int = 0
    losses: int = 0
    last_ranked_match_at: datetime | None = None

    @property
    def tier(self) -> Tier:
        return get_tier_from_rating(self.rating)


@dataclass(frozen=True)
class RatingChange:
    """Planned post-match state for one participant."""

    user_id: UUID
    previous_rating: int
    rating: int
    wins: int
    losses: int

    @property
    def delta(self) -> int:
        return self.rating - self.previous_rating

    @property
    def previous_tier(self) -> Tier:
        return get_tier_from_rating(self.previous_rating)

    @property
    def tier(self) -> Tier:
        return get_tier_from_rating(self.rating)


@dataclass(frozen=True)
class TierPromotion:
    """Signal emitted when a participant moves up a tier."""

    user_id: UUID
    from_tier: Tier
    to_tier: Tier


@dataclass(frozen=True)
class MatchResult:
    """Outcome of an accepted ranked match submission."""

    session_id: UUID
    winner_id: UUID
    loser_id: UUID
    updates: tuple[RatingChange, ...]
    promotions: tuple[TierPromotion, ...] = ()


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked row of the ladder."""

    rank: int
    user_id: UUID
    rating: int
    wins: int
    losses: int
    tier: Tier | None = None
