"""Community "confirmed vaper" signal derived from yes/no vote counters."""

from __future__ import annotations

from dataclasses import dataclass

MIN_VOTES_FOR_LIKELY = 10
LIKELY_PERCENTAGE_THRESHOLD = 60.0


@dataclass(frozen=True)
class VaperLikelihood:
    is_likely_vaper: bool
    percentage: float
    total_votes: int


def get_vaper_likelihood(yes_votes: int = 0, no_votes: int = 0) -> VaperLikelihood:
    if yes_votes < 0 or no_votes < 0:
        raise ValueError("vote counts must be >= 0")
    total_votes = yes_votes + no_votes
    percentage = yes_votes / total_votes * 100.0 if total_votes > 0 else 0.0
    return VaperLikelihood(
        is_likely_vaper=(
            total_votes >= MIN_VOTES_FOR_LIKELY and percentage >= LIKELY_PERCENTAGE_THRESHOLD
        ),
        percentage=percentage,
        total_votes=total_votes,
    )
