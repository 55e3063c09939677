"""Pairwise Elo rating updates."""

from dataclasses import dataclass

from ranked_sessions.domain.rankings import RankingRecord, RatingChange


@dataclass(frozen=True)
class EloParameters:
    k_factor: float = 32.0
    scale_factor: float = 400.0


def calculate_expected_score(
    rating: float, opponent_rating: float, scale_factor: float
) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def calculate_winner_delta(
    winner_rating: int, loser_rating: int, params: EloParameters
) -> int:
    """Return the points the winner gains (and the loser gives up)."""
    expected = calculate_expected_score(
        winner_rating, loser_rating, params.scale_factor
    )
    return max(1, round(params.k_factor * (1.0 - expected)))


def apply_match_outcome(
    winner: RankingRecord, loser: RankingRecord, params: EloParameters
) -> tuple[RatingChange, RatingChange]:
    """Return the post-match state for the winner and the loser."""
    delta = calculate_winner_delta(winner.rating, loser.rating, params)
    winner_change = RatingChange(
        user_id=winner.user_id,
        previous_rating=winner.rating,
        rating=winner.rating + delta,
        wins=winner.wins + 1,
        losses=winner.losses,
    )
    loser_change = RatingChange(
        user_id=loser.user_id,
        previous_rating=loser.rating,
        rating=loser.rating - delta,
        wins=loser.wins,
        losses=loser.losses + 1,
    )
    return winner_change, loser_change
