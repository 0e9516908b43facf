"""Shared fixtures: an in-memory SQLite database and a controllable clock."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.common import CelebrityRecord, new_record_id, slugify
from repositories import ensure_schema
from repositories.celebrity_repository import insert_celebrity, overwrite_match_totals


class FakeClock:
    """Monotonic clock stand-in; tests move time forward explicitly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    return create_session_factory(engine)


@pytest.fixture
def add_celebrity(session_factory: sessionmaker[Session]) -> Callable[..., CelebrityRecord]:
    def _add(
        name: str,
        *,
        rating: int = 1000,
        wins: int = 0,
        matches: int = 0,
        approved: bool = True,
        wikipedia_page_id: str | None = None,
        created_at: datetime | None = None,
    ) -> CelebrityRecord:
        now = created_at or datetime(2026, 1, 1, 12, 0, 0)
        with session_factory() as session:
            with session.begin():
                record = insert_celebrity(
                    session,
                    celebrity_id=new_record_id(),
                    name=name,
                    slug=slugify(name),
                    wikipedia_page_id=wikipedia_page_id,
                    approved=approved,
                    rating=rating,
                    now=now,
                )
                if wins or matches:
                    overwrite_match_totals(
                        session,
                        celebrity_id=record.id,
                        rating=rating,
                        wins=wins,
                        matches=matches,
                        now=now,
                    )
        return record

    return _add
