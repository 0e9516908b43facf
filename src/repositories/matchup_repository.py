"""Persistence helpers for the append-only match_outcomes and skip_events logs."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, insert, select, union_all
from sqlalchemy.orm import Session

from domain.common import MatchOutcomeRecord, SkipEventRecord, SkipStat
from models.matchup import MatchOutcome, SkipEvent


def insert_match_outcome(session: Session, outcome: MatchOutcomeRecord) -> None:
    session.execute(
        insert(MatchOutcome),
        [
            {
                "id": outcome.id,
                "event_time": outcome.event_time,
                "matchup_key": outcome.matchup_key,
                "celeb_a_id": outcome.celeb_a_id,
                "celeb_b_id": outcome.celeb_b_id,
                "celeb_a_name": outcome.celeb_a_name,
                "celeb_b_name": outcome.celeb_b_name,
                "winner": outcome.winner.value,
                "k_factor": outcome.k_factor,
                "celeb_a_rating_before": outcome.celeb_a_rating_before,
                "celeb_b_rating_before": outcome.celeb_b_rating_before,
                "celeb_a_rating_after": outcome.celeb_a_rating_after,
                "celeb_b_rating_after": outcome.celeb_b_rating_after,
                "client_ip": outcome.client_ip,
            }
        ],
    )


def insert_skip_event(session: Session, skip: SkipEventRecord) -> None:
    session.execute(
        insert(SkipEvent),
        [
            {
                "id": skip.id,
                "event_time": skip.event_time,
                "matchup_key": skip.matchup_key,
                "celeb_a_id": skip.celeb_a_id,
                "celeb_b_id": skip.celeb_b_id,
                "celeb_a_name": skip.celeb_a_name,
                "celeb_b_name": skip.celeb_b_name,
                "client_ip": skip.client_ip,
            }
        ],
    )


def fetch_match_outcomes(session: Session, *, since: datetime | None = None) -> list[MatchOutcomeRecord]:
    """Match outcomes in deterministic chronological order."""
    statement = select(MatchOutcome).order_by(MatchOutcome.event_time, MatchOutcome.id)
    if since is not None:
        statement = statement.where(MatchOutcome.event_time >= since)
    return [row.to_record() for row in session.execute(statement).scalars()]


def fetch_recent_match_outcomes(session: Session, *, limit: int) -> list[MatchOutcomeRecord]:
    statement = (
        select(MatchOutcome)
        .order_by(MatchOutcome.event_time.desc(), MatchOutcome.id.desc())
        .limit(limit)
    )
    return [row.to_record() for row in session.execute(statement).scalars()]


def fetch_match_outcomes_for_pair(session: Session, *, matchup_key: str) -> list[MatchOutcomeRecord]:
    statement = (
        select(MatchOutcome)
        .where(MatchOutcome.matchup_key == matchup_key)
        .order_by(MatchOutcome.event_time, MatchOutcome.id)
    )
    return [row.to_record() for row in session.execute(statement).scalars()]


def count_match_outcomes(session: Session) -> int:
    return int(session.scalar(select(func.count()).select_from(MatchOutcome)) or 0)


def fetch_rating_gains(session: Session, *, since: datetime) -> dict[str, int]:
    """Summed rating change per celebrity over outcomes at or after ``since``."""
    side_a = select(
        MatchOutcome.celeb_a_id.label("celebrity_id"),
        (MatchOutcome.celeb_a_rating_after - MatchOutcome.celeb_a_rating_before).label("delta"),
    ).where(MatchOutcome.event_time >= since)
    side_b = select(
        MatchOutcome.celeb_b_id.label("celebrity_id"),
        (MatchOutcome.celeb_b_rating_after - MatchOutcome.celeb_b_rating_before).label("delta"),
    ).where(MatchOutcome.event_time >= since)
    sides = union_all(side_a, side_b).subquery("sides")

    statement = select(sides.c.celebrity_id, func.sum(sides.c.delta)).group_by(sides.c.celebrity_id)
    return {celebrity_id: int(gain or 0) for celebrity_id, gain in session.execute(statement)}


def fetch_skip_events_page(
    session: Session,
    *,
    page_size: int,
    page_number: int,
) -> tuple[list[SkipEventRecord], int]:
    """Newest-first page of skip events plus the total count."""
    total = int(session.scalar(select(func.count()).select_from(SkipEvent)) or 0)
    statement = (
        select(SkipEvent)
        .order_by(SkipEvent.event_time.desc(), SkipEvent.id.desc())
        .offset(page_number * page_size)
        .limit(page_size)
    )
    items = [row.to_record() for row in session.execute(statement).scalars()]
    return items, total


def fetch_skip_stats(session: Session) -> list[SkipStat]:
    """Skip counts per celebrity, counting both sides of every skip, most skipped first."""
    side_a = select(
        SkipEvent.celeb_a_id.label("celebrity_id"),
        SkipEvent.celeb_a_name.label("celebrity_name"),
    )
    side_b = select(
        SkipEvent.celeb_b_id.label("celebrity_id"),
        SkipEvent.celeb_b_name.label("celebrity_name"),
    )
    sides = union_all(side_a, side_b).subquery("sides")
    skip_count = func.count().label("skip_count")

    statement = (
        select(sides.c.celebrity_id, func.max(sides.c.celebrity_name), skip_count)
        .group_by(sides.c.celebrity_id)
        .order_by(skip_count.desc(), sides.c.celebrity_id)
    )
    return [
        SkipStat(celebrity_id=celebrity_id, celebrity_name=name, skip_count=int(count))
        for celebrity_id, name, count in session.execute(statement)
    ]
