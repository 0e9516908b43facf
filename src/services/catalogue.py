"""Read paths over the celebrity snapshot plus the community write paths.

Rankings, search and profiles are served from the process-local snapshot;
suggestions, confirmed-vaper votes and skips go straight to the database.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import (
    CelebrityRecord,
    Climber,
    MatchOutcomeRecord,
    Page,
    RankedCelebrity,
    SkipEventRecord,
    matchup_key,
    new_record_id,
    slugify,
    utc_now,
    validate_celebrity_id,
)
from domain.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from domain.metrics import (
    matches_per_day,
    rating_percentile_from_rank,
    wilson_lower_bound,
    win_rate,
)
from domain.rate_limit import RateLimiter, RateLimitRule
from domain.vaper import VaperLikelihood, get_vaper_likelihood
from repositories.celebrity_repository import (
    fetch_celebrities_by_ids,
    fetch_celebrity,
    fetch_celebrity_by_slug,
    find_celebrity_by_name,
    increment_confirmed_vote,
    insert_celebrity,
)
from repositories.matchup_repository import (
    fetch_rating_gains,
    fetch_recent_match_outcomes,
    insert_skip_event,
)
from services.snapshot import CelebritySnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 100
SEARCH_RESULT_LIMIT = 10
MAX_NAME_LENGTH = 100
DEFAULT_RECENT_MATCHUPS = 100


@dataclass(frozen=True)
class CelebrityProfile:
    celebrity: CelebrityRecord
    rank: int | None
    total_ranked: int
    win_rate: float
    win_rate_lower_bound: float
    confirmed_vaper_lower_bound: float
    matches_per_day: float | None
    rating_percentile: float | None
    vaper: VaperLikelihood


@dataclass(frozen=True)
class SuggestionResult:
    success: bool
    message: str
    celebrity: CelebrityRecord | None = None


@dataclass(frozen=True)
class ConfirmedVoteCounts:
    yes_votes: int
    no_votes: int


@dataclass(frozen=True)
class CatalogueRules:
    suggest: RateLimitRule
    vaper_vote: RateLimitRule
    skip: RateLimitRule


def parse_offset_cursor(cursor: str | None) -> int:
    """Decimal offset cursor; anything unparsable or negative starts from 0."""
    if cursor is None:
        return 0
    try:
        offset = int(cursor)
    except ValueError:
        return 0
    return max(0, offset)


def validate_page_size(page_size: int, *, maximum: int) -> int:
    if isinstance(page_size, bool) or not isinstance(page_size, int):
        raise ValidationError("page_size must be an integer")
    if page_size < 1 or page_size > maximum:
        raise ValidationError(f"page_size must be between 1 and {maximum}")
    return page_size


def rank_celebrities(celebrities: list[CelebrityRecord]) -> list[RankedCelebrity]:
    """Rating-descending order with 1-based ranks; name then id break ties."""
    ordered = sorted(celebrities, key=lambda record: (-record.rating, record.name, record.id))
    return [RankedCelebrity(celebrity=record, rank=index + 1) for index, record in enumerate(ordered)]


class CelebrityCatalogue:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        snapshot: CelebritySnapshot,
        rate_limiter: RateLimiter,
        *,
        rules: CatalogueRules,
        initial_rating: int,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.snapshot = snapshot
        self._rate_limiter = rate_limiter
        self.rules = rules
        self.initial_rating = initial_rating
        self._now = now

    # Reads

    def get_all_celebrities(self) -> list[CelebrityRecord]:
        """Approved celebrities, rating descending."""
        return [entry.celebrity for entry in rank_celebrities(self.snapshot.approved())]

    def get_by_id(self, celebrity_id: str) -> CelebrityRecord | None:
        celebrity_id = validate_celebrity_id(celebrity_id)
        self.snapshot.all()
        cached = self.snapshot.find_by_id(celebrity_id)
        if cached is not None:
            return cached

        record = self._read(
            "reading celebrity",
            lambda session: fetch_celebrity(session, celebrity_id),
        )
        if record is not None:
            self.snapshot.upsert(record)
        return record

    def require(self, celebrity_id: str) -> CelebrityRecord:
        record = self.get_by_id(celebrity_id)
        if record is None:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")
        return record

    def get_by_slug(self, slug: str) -> CelebrityRecord | None:
        slug = slug.strip().lower()
        if not slug:
            raise ValidationError("slug must not be empty")
        self.snapshot.all()
        cached = self.snapshot.find_by_slug(slug)
        if cached is not None:
            return cached

        record = self._read(
            "reading celebrity",
            lambda session: fetch_celebrity_by_slug(session, slug),
        )
        if record is not None:
            self.snapshot.upsert(record)
        return record

    def get_ranked_page(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        cursor: str | None = None,
        search: str | None = None,
    ) -> Page[RankedCelebrity]:
        page_size = validate_page_size(page_size, maximum=MAX_PAGE_SIZE)
        offset = parse_offset_cursor(cursor)

        ranked = rank_celebrities(self.snapshot.approved())
        term = (search or "").strip().lower()
        if term:
            ranked = [entry for entry in ranked if term in entry.celebrity.name.lower()]

        items = ranked[offset : offset + page_size]
        has_more = offset + page_size < len(ranked)
        return Page(
            items=items,
            total_count=len(ranked),
            next_cursor=str(offset + page_size) if has_more else None,
        )

    def search(self, term: str) -> list[CelebrityRecord]:
        normalized = term.strip().lower()
        if not normalized:
            raise ValidationError("search term must not be empty")
        matches = [entry.celebrity for entry in rank_celebrities(self.snapshot.approved())]
        return [record for record in matches if normalized in record.name.lower()][
            :SEARCH_RESULT_LIMIT
        ]

    def get_profile(self, celebrity_id: str) -> CelebrityProfile:
        celebrity = self.require(celebrity_id)
        ranked = rank_celebrities(self.snapshot.approved())
        rank = next((entry.rank for entry in ranked if entry.celebrity.id == celebrity.id), None)
        confirmed_total = celebrity.confirmed_vaper_yes_votes + celebrity.confirmed_vaper_no_votes

        return CelebrityProfile(
            celebrity=celebrity,
            rank=rank,
            total_ranked=len(ranked),
            win_rate=win_rate(celebrity.wins, celebrity.matches),
            win_rate_lower_bound=wilson_lower_bound(celebrity.wins, celebrity.matches),
            confirmed_vaper_lower_bound=wilson_lower_bound(
                celebrity.confirmed_vaper_yes_votes,
                confirmed_total,
            ),
            matches_per_day=matches_per_day(celebrity.matches, celebrity.created_at, now=self._now()),
            rating_percentile=(
                None if rank is None else rating_percentile_from_rank(rank, len(ranked))
            ),
            vaper=get_vaper_likelihood(
                celebrity.confirmed_vaper_yes_votes,
                celebrity.confirmed_vaper_no_votes,
            ),
        )

    def get_recent_matchups(self, limit: int = DEFAULT_RECENT_MATCHUPS) -> list[MatchOutcomeRecord]:
        limit = validate_page_size(limit, maximum=1000)
        return self._read(
            "reading recent matchups",
            lambda session: fetch_recent_match_outcomes(session, limit=limit),
        )

    def get_top_climbers(self, limit: int = 5, hours_back: int = 24) -> list[Climber]:
        """Celebrities with the largest positive rating gain over the last ``hours_back`` hours."""
        limit = validate_page_size(limit, maximum=MAX_PAGE_SIZE)
        if hours_back <= 0:
            raise ValidationError("hours_back must be > 0")

        since = self._now() - timedelta(hours=hours_back)
        gains = self._read(
            "reading rating gains",
            lambda session: fetch_rating_gains(session, since=since),
        )

        ranked = {entry.celebrity.id: entry for entry in rank_celebrities(self.snapshot.approved())}
        climbers = [
            Climber(celebrity=ranked[celebrity_id].celebrity, rank=ranked[celebrity_id].rank, rating_gain=gain)
            for celebrity_id, gain in gains.items()
            if gain > 0 and celebrity_id in ranked
        ]
        climbers.sort(key=lambda climber: (-climber.rating_gain, climber.rank))
        return climbers[:limit]

    # Community writes

    def suggest(
        self,
        name: str,
        wikipedia_page_id: str | None = None,
        *,
        client_ip: str = "unknown",
    ) -> SuggestionResult:
        name = name.strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"name must be between 1 and {MAX_NAME_LENGTH} characters")
        if wikipedia_page_id is not None:
            wikipedia_page_id = wikipedia_page_id.strip() or None

        self._rate_limiter.enforce(f"suggest:{client_ip}", self.rules.suggest)

        now = self._now()
        try:
            with self._session_factory() as session:
                with session.begin():
                    existing = find_celebrity_by_name(session, name)
                    if existing is not None:
                        return SuggestionResult(success=False, message=_duplicate_message(existing))
                    record = insert_celebrity(
                        session,
                        celebrity_id=new_record_id(),
                        name=name,
                        slug=slugify(name) or None,
                        wikipedia_page_id=wikipedia_page_id,
                        approved=False,
                        rating=self.initial_rating,
                        now=now,
                    )
        except IntegrityError as exc:
            logger.warning("suggestion %r rejected by the database: %s", name, exc.orig)
            raise ConflictError(f"A celebrity with the slug of {name!r} already exists") from exc
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while saving suggestion") from exc

        self.snapshot.invalidate()
        logger.info("suggested celebrity id=%s name=%r client_ip=%s", record.id, name, client_ip)
        return SuggestionResult(
            success=True,
            message="Thank you! Your celebrity suggestion has been submitted for review.",
            celebrity=record,
        )

    def vote_confirmed_vaper(
        self,
        celebrity_id: str,
        is_vaper: bool,
        *,
        client_ip: str = "unknown",
    ) -> ConfirmedVoteCounts:
        celebrity_id = validate_celebrity_id(celebrity_id)
        if not isinstance(is_vaper, bool):
            raise ValidationError("is_vaper must be a boolean")

        self._rate_limiter.enforce(f"vaper-vote:{client_ip}", self.rules.vaper_vote)

        try:
            with self._session_factory() as session:
                with session.begin():
                    record = increment_confirmed_vote(
                        session,
                        celebrity_id=celebrity_id,
                        is_vaper=is_vaper,
                        now=self._now(),
                    )
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while recording confirmed-vaper vote") from exc
        if record is None:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")

        self.snapshot.upsert(record)
        return ConfirmedVoteCounts(
            yes_votes=record.confirmed_vaper_yes_votes,
            no_votes=record.confirmed_vaper_no_votes,
        )

    def log_skip(
        self,
        celeb_a_id: str,
        celeb_b_id: str,
        *,
        client_ip: str = "unknown",
    ) -> SkipEventRecord:
        celeb_a_id = validate_celebrity_id(celeb_a_id, field_name="celeb_a_id")
        celeb_b_id = validate_celebrity_id(celeb_b_id, field_name="celeb_b_id")
        if celeb_a_id == celeb_b_id:
            raise ValidationError("celeb_a_id and celeb_b_id must differ")

        self._rate_limiter.enforce(f"skip:{client_ip}", self.rules.skip)

        try:
            with self._session_factory() as session:
                with session.begin():
                    found = fetch_celebrities_by_ids(session, [celeb_a_id, celeb_b_id])
                    missing = [cid for cid in (celeb_a_id, celeb_b_id) if cid not in found]
                    if missing:
                        raise NotFoundError(f"Celebrity not found: {', '.join(missing)}")
                    skip = SkipEventRecord(
                        id=new_record_id(),
                        event_time=self._now(),
                        matchup_key=matchup_key(celeb_a_id, celeb_b_id),
                        celeb_a_id=celeb_a_id,
                        celeb_b_id=celeb_b_id,
                        celeb_a_name=found[celeb_a_id].name,
                        celeb_b_name=found[celeb_b_id].name,
                        client_ip=client_ip,
                    )
                    insert_skip_event(session, skip)
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while logging skip") from exc
        return skip

    def _read(self, action: str, operation: Callable[[Session], T]) -> T:
        try:
            with self._session_factory() as session:
                return operation(session)
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Database error while {action}") from exc


def _duplicate_message(existing: CelebrityRecord) -> str:
    if not existing.approved:
        return "This celebrity has already been suggested and is pending approval."
    return "This celebrity already exists in our database!"


__all__ = [
    "CatalogueRules",
    "CelebrityCatalogue",
    "CelebrityProfile",
    "ConfirmedVoteCounts",
    "SuggestionResult",
    "parse_offset_cursor",
    "rank_celebrities",
    "validate_page_size",
]
