"""Request and response models for the HTTP API."""

from uuid import UUID

from pydantic import BaseModel

from ranked_sessions.domain.rankings import LeaderboardEntry, MatchResult


class MatchResultRequest(BaseModel):
    winner_id: UUID
    loser_id: UUID


class RatingUpdateModel(BaseModel):
    user_id: UUID
    rating: int
    wins: int
    losses: int
    delta: int
    tier: str


class TierPromotionModel(BaseModel):
    user_id: UUID
    from_tier: str
    to_tier: str


class MatchResultResponse(BaseModel):
    session_id: UUID
    winner_id: UUID
    loser_id: UUID
    updates: list[RatingUpdateModel]
    promotions: list[TierPromotionModel]

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchResultResponse":
        return cls(
            session_id=result.session_id,
            winner_id=result.winner_id,
            loser_id=result.loser_id,
            updates=[
                RatingUpdateModel(
                    user_id=change.user_id,
                    rating=change.rating,
                    wins=change.wins,
                    losses=change.losses,
                    delta=change.delta,
                    tier=change.tier.value,
                )
                for change in result.updates
            ],
            promotions=[
                TierPromotionModel(
                    user_id=promotion.user_id,
                    from_tier=promotion.from_tier.value,
                    to_tier=promotion.to_tier.value,
                )
                for promotion in result.promotions
            ],
        )


class LeaderboardEntryModel(BaseModel):
    rank: int
    user_id: UUID
    rating: int
    wins: int
    losses: int
    tier: str | None = None

    @classmethod
    def from_entry(cls, entry: LeaderboardEntry) -> "LeaderboardEntryModel":
        return cls(
            rank=entry.rank,
            user_id=entry.user_id,
            rating=entry.rating,
            wins=entry.wins,
            losses=entry.losses,
            tier=entry.tier.value if entry.tier else None,
        )
