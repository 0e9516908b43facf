"""Stateful replay of the append-only match log."""

from __future__ import annotations

from dataclasses import dataclass

from domain.common import MatchOutcomeRecord, Winner
from domain.ratings.elo.calculator import EloParameters, update_elo


@dataclass(frozen=True)
class ReplayEvent:
    match_outcome_id: str
    celeb_a_id: str
    celeb_b_id: str
    logged_a_before: int
    logged_b_before: int
    replayed_a_before: int
    replayed_b_before: int
    replayed_a_after: int
    replayed_b_after: int

    @property
    def diverged(self) -> bool:
        return (
            self.logged_a_before != self.replayed_a_before
            or self.logged_b_before != self.replayed_b_before
        )


class RatingReplayCalculator:
    """Recompute ratings from match outcomes in chronological order.

    Concurrent votes on an overlapping celebrity are not serialized by the
    store, so a replay can legitimately disagree with stored ratings.
    ``ReplayEvent.diverged`` marks the rows where the logged "before" rating
    differs from the replayed one.
    """

    def __init__(self, params: EloParameters) -> None:
        self.params = params
        self._ratings: dict[str, int] = {}
        self._wins: dict[str, int] = {}
        self._matches: dict[str, int] = {}

    def get_rating(self, celebrity_id: str) -> int:
        return self._ratings.get(celebrity_id, self.params.initial_rating)

    def tracked_entity_count(self) -> int:
        return len(self._ratings)

    def ratings(self) -> dict[str, int]:
        return dict(self._ratings)

    def wins(self) -> dict[str, int]:
        return dict(self._wins)

    def matches(self) -> dict[str, int]:
        return dict(self._matches)

    def process_outcome(self, outcome: MatchOutcomeRecord) -> ReplayEvent:
        if outcome.celeb_a_id == outcome.celeb_b_id:
            raise ValueError(
                f"match_outcome_id={outcome.id} pairs {outcome.celeb_a_id} with itself"
            )

        a_before = self.get_rating(outcome.celeb_a_id)
        b_before = self.get_rating(outcome.celeb_b_id)
        update = update_elo(
            a_before,
            b_before,
            outcome.winner,
            outcome.k_factor,
            scale_factor=self.params.scale_factor,
        )

        self._ratings[outcome.celeb_a_id] = update.new_rating_a
        self._ratings[outcome.celeb_b_id] = update.new_rating_b
        winner_id = outcome.celeb_a_id if outcome.winner is Winner.A else outcome.celeb_b_id
        for celebrity_id in (outcome.celeb_a_id, outcome.celeb_b_id):
            self._matches[celebrity_id] = self._matches.get(celebrity_id, 0) + 1
            self._wins.setdefault(celebrity_id, 0)
        self._wins[winner_id] += 1

        return ReplayEvent(
            match_outcome_id=outcome.id,
            celeb_a_id=outcome.celeb_a_id,
            celeb_b_id=outcome.celeb_b_id,
            logged_a_before=outcome.celeb_a_rating_before,
            logged_b_before=outcome.celeb_b_rating_before,
            replayed_a_before=a_before,
            replayed_b_before=b_before,
            replayed_a_after=update.new_rating_a,
            replayed_b_after=update.new_rating_b,
        )
