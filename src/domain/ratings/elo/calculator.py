"""Pairwise Elo rating updates for celebrity head-to-head votes."""

from __future__ import annotations

from dataclasses import dataclass
from math import floor

from domain.common import DEFAULT_RATING, Winner
from domain.errors import ValidationError

MIN_K_FACTOR = 1
MAX_K_FACTOR = 64
DEFAULT_K_FACTOR = 32
DEFAULT_SCALE_FACTOR = 400.0


@dataclass(frozen=True)
class EloParameters:
    initial_rating: int = DEFAULT_RATING
    k_factor: int = DEFAULT_K_FACTOR
    scale_factor: float = DEFAULT_SCALE_FACTOR


@dataclass(frozen=True)
class EloUpdate:
    """Result of applying one outcome to a pair of ratings."""

    rating_a: int
    rating_b: int
    new_rating_a: int
    new_rating_b: int
    expected_a: float
    expected_b: float
    k_factor: int

    @property
    def delta_a(self) -> int:
        return self.new_rating_a - self.rating_a

    @property
    def delta_b(self) -> int:
        return self.new_rating_b - self.rating_b


@dataclass(frozen=True)
class EntityDelta:
    new_rating: int
    wins_delta: int
    matches_delta: int


@dataclass(frozen=True)
class MatchDeltas:
    """Field-level changes to persist for both sides of one match."""

    a: EntityDelta
    b: EntityDelta
    k_factor: int


def calculate_expected_score(
    rating: float,
    opponent_rating: float,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties going away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value < 0:
        return -floor(-value + 0.5)
    return floor(value + 0.5)


def coerce_winner(winner: Winner | str) -> Winner:
    try:
        return Winner(winner)
    except ValueError as exc:
        raise ValidationError(f"winner must be 'A' or 'B', got {winner!r}") from exc


def validate_k_factor(k_factor: object) -> int:
    if isinstance(k_factor, bool) or not isinstance(k_factor, int):
        raise ValidationError(f"k_factor must be an integer, got {k_factor!r}")
    if k_factor < MIN_K_FACTOR or k_factor > MAX_K_FACTOR:
        raise ValidationError(
            f"k_factor must be between {MIN_K_FACTOR} and {MAX_K_FACTOR}, got {k_factor}"
        )
    return k_factor


def update_elo(
    rating_a: int,
    rating_b: int,
    winner: Winner | str,
    k_factor: int = DEFAULT_K_FACTOR,
    *,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> EloUpdate:
    """Return new integer ratings for both sides after ``winner`` wins.

    Each side is rounded independently, so the two deltas may differ in
    magnitude by one point.
    """
    winner = coerce_winner(winner)
    k_factor = validate_k_factor(k_factor)

    expected_a = calculate_expected_score(rating_a, rating_b, scale_factor)
    expected_b = 1.0 - expected_a
    actual_a = 1.0 if winner is Winner.A else 0.0
    actual_b = 1.0 - actual_a

    return EloUpdate(
        rating_a=rating_a,
        rating_b=rating_b,
        new_rating_a=round_half_away_from_zero(rating_a + k_factor * (actual_a - expected_a)),
        new_rating_b=round_half_away_from_zero(rating_b + k_factor * (actual_b - expected_b)),
        expected_a=expected_a,
        expected_b=expected_b,
        k_factor=k_factor,
    )


def build_match_deltas(
    rating_a: int,
    rating_b: int,
    winner: Winner | str,
    k_factor: int = DEFAULT_K_FACTOR,
    *,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> MatchDeltas:
    winner = coerce_winner(winner)
    update = update_elo(rating_a, rating_b, winner, k_factor, scale_factor=scale_factor)
    return MatchDeltas(
        a=EntityDelta(
            new_rating=update.new_rating_a,
            wins_delta=1 if winner is Winner.A else 0,
            matches_delta=1,
        ),
        b=EntityDelta(
            new_rating=update.new_rating_b,
            wins_delta=1 if winner is Winner.B else 0,
            matches_delta=1,
        ),
        k_factor=update.k_factor,
    )
