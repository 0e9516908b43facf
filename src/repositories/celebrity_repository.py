"""Persistence helpers for the celebrities table.

Every mutation of a celebrity row goes through one of the functions below,
each touching a single concern: match results, community vote counters,
the moderation flag, or approval.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from domain.common import CelebrityRecord, CelebrityStatus
from models.celebrity import Celebrity


def fetch_all_celebrities(session: Session, *, approved_only: bool = False) -> list[CelebrityRecord]:
    """Full scan ordered by rating descending (name breaks ties)."""
    statement = select(Celebrity).order_by(Celebrity.rating.desc(), Celebrity.name, Celebrity.id)
    if approved_only:
        statement = statement.where(Celebrity.approved.is_(True))
    return [row.to_record() for row in session.execute(statement).scalars()]


def fetch_celebrity(session: Session, celebrity_id: str) -> CelebrityRecord | None:
    row = session.get(Celebrity, celebrity_id, populate_existing=True)
    return None if row is None else row.to_record()


def fetch_celebrities_by_ids(
    session: Session,
    celebrity_ids: Sequence[str],
) -> dict[str, CelebrityRecord]:
    if not celebrity_ids:
        return {}
    statement = (
        select(Celebrity)
        .where(Celebrity.id.in_(list(celebrity_ids)))
        .execution_options(populate_existing=True)
    )
    return {row.id: row.to_record() for row in session.execute(statement).scalars()}


def fetch_celebrity_by_slug(session: Session, slug: str) -> CelebrityRecord | None:
    row = session.execute(select(Celebrity).where(Celebrity.slug == slug)).scalar_one_or_none()
    return None if row is None else row.to_record()


def find_celebrity_by_name(session: Session, name: str) -> CelebrityRecord | None:
    """Case-insensitive exact-name lookup across approved and pending rows."""
    statement = (
        select(Celebrity)
        .where(func.lower(Celebrity.name) == name.strip().lower())
        .order_by(Celebrity.created_at)
        .limit(1)
    )
    row = session.execute(statement).scalar_one_or_none()
    return None if row is None else row.to_record()


def insert_celebrity(
    session: Session,
    *,
    celebrity_id: str,
    name: str,
    slug: str | None,
    wikipedia_page_id: str | None,
    approved: bool,
    rating: int,
    now: datetime,
) -> CelebrityRecord:
    row = Celebrity(
        id=celebrity_id,
        name=name,
        slug=slug,
        wikipedia_page_id=wikipedia_page_id,
        rating=rating,
        wins=0,
        matches=0,
        vapes_votes=0,
        does_not_vape_votes=0,
        confirmed_vaper=False,
        confirmed_vaper_yes_votes=0,
        confirmed_vaper_no_votes=0,
        approved=approved,
        status=CelebrityStatus.ACTIVE.value,
        created_at=now,
        updated_at=now,
    )
    session.add(row)
    session.flush()
    return row.to_record()


def apply_match_result(
    session: Session,
    *,
    celebrity_id: str,
    new_rating: int,
    wins_delta: int,
    now: datetime,
) -> bool:
    """Set the rating, count one match and ``wins_delta`` wins.

    Returns False when the row no longer exists; the caller decides whether
    that aborts the surrounding transaction.
    """
    if wins_delta not in (0, 1):
        raise ValueError(f"wins_delta must be 0 or 1, got {wins_delta}")
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values(
            rating=new_rating,
            matches=Celebrity.matches + 1,
            wins=Celebrity.wins + wins_delta,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return session.execute(statement).rowcount == 1


def increment_confirmed_vote(
    session: Session,
    *,
    celebrity_id: str,
    is_vaper: bool,
    now: datetime,
) -> CelebrityRecord | None:
    column = Celebrity.confirmed_vaper_yes_votes if is_vaper else Celebrity.confirmed_vaper_no_votes
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values({column: column + 1, Celebrity.updated_at: now})
        .execution_options(synchronize_session=False)
    )
    if session.execute(statement).rowcount != 1:
        return None
    return fetch_celebrity(session, celebrity_id)


def reset_confirmed_votes(
    session: Session,
    *,
    celebrity_id: str,
    now: datetime,
) -> CelebrityRecord | None:
    """Administrative reset; the only path that lowers the vote counters."""
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values(confirmed_vaper_yes_votes=0, confirmed_vaper_no_votes=0, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if session.execute(statement).rowcount != 1:
        return None
    return fetch_celebrity(session, celebrity_id)


def set_confirmed_flag(
    session: Session,
    *,
    celebrity_id: str,
    value: bool,
    now: datetime,
) -> CelebrityRecord | None:
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values(confirmed_vaper=value, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if session.execute(statement).rowcount != 1:
        return None
    return fetch_celebrity(session, celebrity_id)


def set_approved(session: Session, *, celebrity_id: str, now: datetime) -> bool:
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values(approved=True, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return session.execute(statement).rowcount == 1


def delete_celebrity(session: Session, *, celebrity_id: str) -> bool:
    statement = (
        delete(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .execution_options(synchronize_session=False)
    )
    return session.execute(statement).rowcount == 1


def count_celebrities(session: Session, *, approved_only: bool = True) -> int:
    statement = select(func.count()).select_from(Celebrity)
    if approved_only:
        statement = statement.where(Celebrity.approved.is_(True))
    return int(session.scalar(statement) or 0)


def overwrite_match_totals(
    session: Session,
    *,
    celebrity_id: str,
    rating: int,
    wins: int,
    matches: int,
    now: datetime,
) -> bool:
    """Replace rating and counters wholesale; used when rebuilding from the match log."""
    statement = (
        update(Celebrity)
        .where(Celebrity.id == celebrity_id)
        .values(rating=rating, wins=wins, matches=matches, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return session.execute(statement).rowcount == 1
