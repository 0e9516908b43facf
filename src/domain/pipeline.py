"""Rebuild celebrity ratings from the append-only match log."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from domain.common import CelebrityRecord, utc_now
from domain.ratings.elo.calculator import EloParameters
from domain.ratings.elo.replay import RatingReplayCalculator
from repositories.celebrity_repository import fetch_all_celebrities, overwrite_match_totals
from repositories.matchup_repository import fetch_match_outcomes


@dataclass(frozen=True)
class RatingDrift:
    celebrity_id: str
    name: str
    stored_rating: int
    replayed_rating: int
    stored_wins: int
    replayed_wins: int
    stored_matches: int
    replayed_matches: int

    @property
    def rating_delta(self) -> int:
        return self.stored_rating - self.replayed_rating


@dataclass(frozen=True)
class ReplaySummary:
    """Outcome of one replay over the match log."""

    processed_outcomes: int
    diverged_outcomes: int
    tracked_entities: int
    drifts: list[RatingDrift]
    applied: int
    dry_run: bool


def _drift_for(
    record: CelebrityRecord,
    calculator: RatingReplayCalculator,
    wins: dict[str, int],
    matches: dict[str, int],
) -> RatingDrift | None:
    replayed_rating = calculator.get_rating(record.id)
    replayed_wins = wins.get(record.id, 0)
    replayed_matches = matches.get(record.id, 0)
    if (
        record.rating == replayed_rating
        and record.wins == replayed_wins
        and record.matches == replayed_matches
    ):
        return None
    return RatingDrift(
        celebrity_id=record.id,
        name=record.name,
        stored_rating=record.rating,
        replayed_rating=replayed_rating,
        stored_wins=record.wins,
        replayed_wins=replayed_wins,
        stored_matches=record.matches,
        replayed_matches=replayed_matches,
    )


def replay_match_log(
    *,
    session_factory: sessionmaker[Session],
    params: EloParameters,
    dry_run: bool = True,
    echo: Callable[[str], None] | None = None,
) -> ReplaySummary:
    """Replay every match outcome in order and compare against stored ratings.

    With ``dry_run=False`` the replayed rating, wins and matches overwrite the
    stored values of every drifted celebrity in one transaction.
    """
    calculator = RatingReplayCalculator(params)
    diverged_outcomes = 0

    with session_factory() as session:
        outcomes = fetch_match_outcomes(session)
        for index, outcome in enumerate(outcomes, start=1):
            if calculator.process_outcome(outcome).diverged:
                diverged_outcomes += 1
            if echo is not None and index % 10_000 == 0:
                echo(f"processed_outcomes={index}/{len(outcomes)}")

        celebrities = fetch_all_celebrities(session)
        wins = calculator.wins()
        matches = calculator.matches()
        drifts = [
            drift
            for drift in (_drift_for(record, calculator, wins, matches) for record in celebrities)
            if drift is not None
        ]

        applied = 0
        if not dry_run and drifts:
            now = utc_now()
            try:
                for drift in drifts:
                    if overwrite_match_totals(
                        session,
                        celebrity_id=drift.celebrity_id,
                        rating=drift.replayed_rating,
                        wins=drift.replayed_wins,
                        matches=drift.replayed_matches,
                        now=now,
                    ):
                        applied += 1
                session.commit()
            except Exception:
                session.rollback()
                raise

    summary = ReplaySummary(
        processed_outcomes=len(outcomes),
        diverged_outcomes=diverged_outcomes,
        tracked_entities=calculator.tracked_entity_count(),
        drifts=drifts,
        applied=applied,
        dry_run=dry_run,
    )
    if echo is not None:
        echo(
            f"{'[dry-run] ' if dry_run else ''}completed "
            f"processed_outcomes={summary.processed_outcomes} "
            f"diverged_outcomes={summary.diverged_outcomes} "
            f"tracked_entities={summary.tracked_entities} "
            f"drifted={len(drifts)} applied={applied}"
        )
    return summary
