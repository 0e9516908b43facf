"""Tests for rankings, search, profiles, suggestions, confirmed votes and skips."""

from __future__ import annotations

import random
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.common import CelebrityRecord
from domain.errors import NotFoundError, RateLimitedError, UpstreamError, ValidationError
from domain.rate_limit import RateLimiter, RateLimitRule
from domain.ratings.elo.calculator import EloParameters
from repositories.celebrity_repository import fetch_celebrity
from repositories.matchup_repository import fetch_skip_events_page
from services.catalogue import CatalogueRules, CelebrityCatalogue, parse_offset_cursor
from services.match_recorder import MatchRecorder
from services.pair_selector import PairSelector
from services.snapshot import CelebritySnapshot

from conftest import FakeClock

AddCelebrity = Callable[..., CelebrityRecord]
NOW = datetime(2026, 3, 1, 12, 0, 0)


def _catalogue(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
    *,
    suggest_max: int = 5,
    now: datetime = NOW,
) -> CelebrityCatalogue:
    return CelebrityCatalogue(
        session_factory,
        CelebritySnapshot(session_factory, ttl_seconds=300.0, clock=clock),
        RateLimiter(clock=clock),
        rules=CatalogueRules(
            suggest=RateLimitRule(window_ms=300_000, max_calls=suggest_max),
            vaper_vote=RateLimitRule(window_ms=60_000, max_calls=20),
            skip=RateLimitRule(window_ms=60_000, max_calls=30),
        ),
        initial_rating=1000,
        now=lambda: now,
    )


def test_ranked_page_orders_by_rating_and_paginates(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    for index, rating in enumerate((1100, 1300, 900, 1200, 1000)):
        add_celebrity(f"Celeb {index}", rating=rating)
    add_celebrity("Pending Star", rating=2000, approved=False)
    catalogue = _catalogue(session_factory, clock)

    first = catalogue.get_ranked_page(page_size=2)
    assert [entry.celebrity.rating for entry in first.items] == [1300, 1200]
    assert [entry.rank for entry in first.items] == [1, 2]
    assert first.total_count == 5
    assert first.next_cursor == "2"

    last = catalogue.get_ranked_page(page_size=2, cursor="4")
    assert [entry.rank for entry in last.items] == [5]
    assert last.next_cursor is None


def test_ranked_page_keeps_global_rank_when_searching(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    add_celebrity("Taylor Swift", rating=1300)
    add_celebrity("Harry Styles", rating=1200)
    add_celebrity("Taylor Lautner", rating=1100)
    page = _catalogue(session_factory, clock).get_ranked_page(search="taylor")
    assert [(entry.celebrity.name, entry.rank) for entry in page.items] == [
        ("Taylor Swift", 1),
        ("Taylor Lautner", 3),
    ]
    assert page.total_count == 2


def test_invalid_cursor_restarts_and_page_size_bounds(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    add_celebrity("One")
    catalogue = _catalogue(session_factory, clock)
    assert parse_offset_cursor("garbage") == 0
    assert parse_offset_cursor("-3") == 0
    assert catalogue.get_ranked_page(cursor="garbage").items[0].celebrity.name == "One"
    with pytest.raises(ValidationError):
        catalogue.get_ranked_page(page_size=0)
    with pytest.raises(ValidationError):
        catalogue.get_ranked_page(page_size=101)


def test_search_returns_top_ten_approved_matches(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    for index in range(12):
        add_celebrity(f"Singer {index:02d}", rating=1000 + index)
    add_celebrity("Singer Pending", approved=False)
    results = _catalogue(session_factory, clock).search("  SINGER ")
    assert len(results) == 10
    assert results[0].name == "Singer 11"
    assert all(record.approved for record in results)


def test_get_by_id_falls_back_to_store_for_new_rows(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    add_celebrity("Early")
    catalogue = _catalogue(session_factory, clock)
    catalogue.get_all_celebrities()

    late = add_celebrity("Late")
    assert catalogue.get_by_id(late.id).name == "Late"
    assert catalogue.get_by_id(str(uuid.uuid4())) is None
    assert catalogue.get_by_slug("late").id == late.id
    with pytest.raises(ValidationError):
        catalogue.get_by_id("nope")


def test_profile_statistics(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    add_celebrity("Leader", rating=1400)
    target = add_celebrity(
        "Target",
        rating=1100,
        wins=6,
        matches=10,
        created_at=NOW - timedelta(days=5),
    )
    add_celebrity("Trailer", rating=900)
    add_celebrity("Last", rating=800)

    profile = _catalogue(session_factory, clock).get_profile(target.id)
    assert profile.rank == 2
    assert profile.total_ranked == 4
    assert profile.win_rate == pytest.approx(60.0)
    assert 0.0 < profile.win_rate_lower_bound < 0.6
    assert profile.confirmed_vaper_lower_bound == pytest.approx(0.0)
    assert profile.matches_per_day == pytest.approx(2.0)
    assert profile.rating_percentile == pytest.approx(75.0)
    assert profile.vaper.is_likely_vaper is False


def test_suggest_creates_unapproved_celebrity(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    catalogue = _catalogue(session_factory, clock)
    result = catalogue.suggest("  New Person! ", "12345", client_ip="3.3.3.3")
    assert result.success is True
    assert result.celebrity is not None

    with session_factory() as session:
        stored = fetch_celebrity(session, result.celebrity.id)
    assert stored.name == "New Person!"
    assert stored.slug == "new-person"
    assert stored.wikipedia_page_id == "12345"
    assert stored.approved is False
    assert stored.rating == 1000
    assert catalogue.get_all_celebrities() == []


def test_suggest_reports_duplicates(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    add_celebrity("Known Star")
    add_celebrity("Waiting Star", approved=False)
    catalogue = _catalogue(session_factory, clock)

    existing = catalogue.suggest("known star")
    assert existing.success is False
    assert "already exists" in existing.message

    pending = catalogue.suggest("WAITING STAR")
    assert pending.success is False
    assert "pending approval" in pending.message


def test_suggest_validation_and_rate_limit(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    catalogue = _catalogue(session_factory, clock, suggest_max=1)
    with pytest.raises(ValidationError):
        catalogue.suggest("   ")
    with pytest.raises(ValidationError):
        catalogue.suggest("x" * 101)

    catalogue.suggest("First Person", client_ip="4.4.4.4")
    with pytest.raises(RateLimitedError):
        catalogue.suggest("Second Person", client_ip="4.4.4.4")


def test_vote_confirmed_vaper_counts(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    celeb = add_celebrity("Cloudy")
    catalogue = _catalogue(session_factory, clock)

    catalogue.vote_confirmed_vaper(celeb.id, True)
    catalogue.vote_confirmed_vaper(celeb.id, True)
    counts = catalogue.vote_confirmed_vaper(celeb.id, False)
    assert (counts.yes_votes, counts.no_votes) == (2, 1)

    with pytest.raises(NotFoundError):
        catalogue.vote_confirmed_vaper(str(uuid.uuid4()), True)
    with pytest.raises(ValidationError):
        catalogue.vote_confirmed_vaper(celeb.id, "yes")


def test_log_skip_records_event(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    celeb_a = add_celebrity("Alpha")
    celeb_b = add_celebrity("Bravo")
    catalogue = _catalogue(session_factory, clock)

    skip = catalogue.log_skip(celeb_b.id, celeb_a.id, client_ip="5.5.5.5")
    assert skip.matchup_key == "|".join(sorted((celeb_a.id, celeb_b.id)))
    assert (skip.celeb_a_name, skip.celeb_b_name) == ("Bravo", "Alpha")

    with session_factory() as session:
        items, total = fetch_skip_events_page(session, page_size=10, page_number=0)
    assert total == 1
    assert items[0].id == skip.id

    with pytest.raises(NotFoundError):
        catalogue.log_skip(celeb_a.id, str(uuid.uuid4()))


def test_recent_matchups_and_top_climbers(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    celeb_a = add_celebrity("Alpha")
    celeb_b = add_celebrity("Bravo")
    celeb_c = add_celebrity("Charlie")
    recorder = MatchRecorder(
        session_factory,
        RateLimiter(clock=clock),
        params=EloParameters(),
        rate_limit_rule=RateLimitRule(),
        now=lambda: NOW - timedelta(hours=1),
    )
    recorder.record_vote(celeb_a.id, celeb_b.id, "A")
    recorder.record_vote(celeb_a.id, celeb_c.id, "A")
    recorder.record_vote(celeb_b.id, celeb_c.id, "A")

    catalogue = _catalogue(session_factory, clock)
    recent = catalogue.get_recent_matchups(limit=2)
    assert len(recent) == 2

    climbers = catalogue.get_top_climbers(limit=5, hours_back=24)
    assert [climber.celebrity.name for climber in climbers] == ["Alpha"]
    assert climbers[0].rating_gain > 0
    assert climbers[0].rank == 1

    assert _catalogue(session_factory, clock, now=NOW + timedelta(days=2)).get_top_climbers() == []


def test_all_celebrities_stay_rating_descending_after_vote(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    leader = add_celebrity("Leader", rating=1200)
    add_celebrity("Middle", rating=1100)
    trailer = add_celebrity("Trailer", rating=900)
    catalogue = _catalogue(session_factory, clock)
    assert [record.rating for record in catalogue.get_all_celebrities()] == [1200, 1100, 900]

    recorder = MatchRecorder(
        session_factory,
        RateLimiter(clock=clock),
        params=EloParameters(),
        rate_limit_rule=RateLimitRule(),
        snapshot=catalogue.snapshot,
        now=lambda: NOW,
    )
    recorder.record_vote(leader.id, trailer.id, "A")

    assert [record.rating for record in catalogue.get_all_celebrities()] == [1205, 1100, 895]


def test_confirmed_vaper_vote_keeps_celebrity_pairable(
    session_factory: sessionmaker[Session],
    add_celebrity: AddCelebrity,
    clock: FakeClock,
) -> None:
    alpha = add_celebrity("Alpha")
    bravo = add_celebrity("Bravo")
    catalogue = _catalogue(session_factory, clock)
    selector = PairSelector(catalogue.snapshot, rng=random.Random(3))
    selector.random_pair()

    catalogue.vote_confirmed_vaper(alpha.id, True)

    first, second = selector.random_pair()
    assert {first.id, second.id} == {alpha.id, bravo.id}
    assert [record.name for record in catalogue.get_all_celebrities()] == ["Alpha", "Bravo"]
    assert catalogue.snapshot.find_by_id(alpha.id).confirmed_vaper_yes_votes == 1


def test_store_read_failures_surface_as_upstream_errors(tmp_path: Path, clock: FakeClock) -> None:
    broken = create_session_factory(create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'vaperank.db'}"))
    catalogue = _catalogue(broken, clock)

    with pytest.raises(UpstreamError):
        PairSelector(catalogue.snapshot).random_pair()
    with pytest.raises(UpstreamError):
        catalogue.get_all_celebrities()
    with pytest.raises(UpstreamError):
        catalogue.get_by_id(str(uuid.uuid4()))
    with pytest.raises(UpstreamError):
        catalogue.get_recent_matchups()
    with pytest.raises(UpstreamError):
        catalogue.get_top_climbers()
