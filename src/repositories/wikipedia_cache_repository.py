"""Persistence helpers for the wikipedia_cache table."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.common import WikipediaSummary
from models.wikipedia_cache import WikipediaCacheEntry


def _to_summary(row: WikipediaCacheEntry) -> WikipediaSummary:
    return WikipediaSummary(title=row.title, bio=row.bio, image=row.image_url)


def fetch_cached_page(session: Session, page_id: str, *, now: datetime) -> WikipediaSummary | None:
    """Cached summary for ``page_id``, ignoring expired rows."""
    row = session.get(WikipediaCacheEntry, page_id)
    if row is None or row.expires_at <= now:
        return None
    return _to_summary(row)


def fetch_cached_pages(
    session: Session,
    page_ids: Sequence[str],
    *,
    now: datetime,
) -> dict[str, WikipediaSummary]:
    if not page_ids:
        return {}
    statement = select(WikipediaCacheEntry).where(
        WikipediaCacheEntry.page_id.in_(list(page_ids)),
        WikipediaCacheEntry.expires_at > now,
    )
    return {row.page_id: _to_summary(row) for row in session.execute(statement).scalars()}


def upsert_cached_page(
    session: Session,
    *,
    page_id: str,
    summary: WikipediaSummary,
    now: datetime,
    ttl_days: int,
) -> None:
    row = session.get(WikipediaCacheEntry, page_id)
    expires_at = now + timedelta(days=ttl_days)
    if row is None:
        session.add(
            WikipediaCacheEntry(
                page_id=page_id,
                title=summary.title,
                bio=summary.bio,
                image_url=summary.image,
                cached_at=now,
                expires_at=expires_at,
            )
        )
    else:
        row.title = summary.title
        row.bio = summary.bio
        row.image_url = summary.image
        row.cached_at = now
        row.expires_at = expires_at
    session.flush()
