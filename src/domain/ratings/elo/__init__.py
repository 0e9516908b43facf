"""Elo rating modules."""

from domain.ratings.elo.calculator import (
    DEFAULT_K_FACTOR,
    MAX_K_FACTOR,
    MIN_K_FACTOR,
    EloParameters,
    EloUpdate,
    EntityDelta,
    MatchDeltas,
    build_match_deltas,
    calculate_expected_score,
    coerce_winner,
    round_half_away_from_zero,
    update_elo,
    validate_k_factor,
)
from domain.ratings.elo.replay import RatingReplayCalculator, ReplayEvent

__all__ = [
    "DEFAULT_K_FACTOR",
    "MAX_K_FACTOR",
    "MIN_K_FACTOR",
    "EloParameters",
    "EloUpdate",
    "EntityDelta",
    "MatchDeltas",
    "RatingReplayCalculator",
    "ReplayEvent",
    "build_match_deltas",
    "calculate_expected_score",
    "coerce_winner",
    "round_half_away_from_zero",
    "update_elo",
    "validate_k_factor",
]
