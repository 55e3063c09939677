"""Skill tiers derived from ratings."""

from enum import StrEnum


class Tier(StrEnum):
    """Named rating bands, lowest first."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    MASTER = "master"

    @property
    def rank(self) -> int:
        """Position of the tier in ascending order."""
        return _TIER_ORDER.index(self)


_TIER_ORDER = tuple(Tier)

# Lower bound of each tier, highest first. Everything below the last bound is bronze.
TIER_THRESHOLDS: tuple[tuple[int, Tier], ...] = (
    (1800, Tier.MASTER),
    (1600, Tier.DIAMOND),
    (1400, Tier.PLATINUM),
    (1200, Tier.GOLD),
    (1000, Tier.SILVER),
)


def get_tier_from_rating(rating: int) -> Tier:
    """Return the tier for a rating."""
    for lower_bound, tier in TIER_THRESHOLDS:
        if rating >= lower_bound:
            return tier
    return Tier.BRONZE


def is_promotion(previous: Tier, current: Tier) -> bool:
    """Return True if the move from previous to current raises the tier."""
    return current.rank > previous.rank
