"""Shared types for the rating, matchmaking and catalogue layers."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Generic, TypeVar

from domain.errors import ValidationError

DEFAULT_RATING = 1000

_SLUG_INVALID_RUN = re.compile(r"[^a-z0-9]+")


class Winner(str, Enum):
    """Which side of a shown pair the voter picked."""

    A = "A"
    B = "B"


class CelebrityStatus(str, Enum):
    ACTIVE = "active"
    RETIRED = "retired"


@dataclass(frozen=True)
class CelebrityRecord:
    """Point-in-time, detached copy of one celebrity row."""

    id: str
    name: str
    slug: str | None
    wikipedia_page_id: str | None
    image: str | None
    bio: str | None
    rating: int
    wins: int
    matches: int
    vapes_votes: int
    does_not_vape_votes: int
    confirmed_vaper: bool
    confirmed_vaper_yes_votes: int
    confirmed_vaper_no_votes: int
    approved: bool
    status: CelebrityStatus
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class MatchOutcomeRecord:
    """Immutable audit row for one recorded head-to-head vote."""

    id: str
    event_time: datetime
    matchup_key: str
    celeb_a_id: str
    celeb_b_id: str
    celeb_a_name: str
    celeb_b_name: str
    winner: Winner
    k_factor: int
    celeb_a_rating_before: int
    celeb_b_rating_before: int
    celeb_a_rating_after: int
    celeb_b_rating_after: int
    client_ip: str


@dataclass(frozen=True)
class SkipEventRecord:
    """Immutable row recorded when a voter declines a shown pair."""

    id: str
    event_time: datetime
    matchup_key: str
    celeb_a_id: str
    celeb_b_id: str
    celeb_a_name: str
    celeb_b_name: str
    client_ip: str


@dataclass(frozen=True)
class SkipStat:
    celebrity_id: str
    celebrity_name: str
    skip_count: int


@dataclass(frozen=True)
class RankedCelebrity:
    celebrity: CelebrityRecord
    rank: int


@dataclass(frozen=True)
class Climber:
    celebrity: CelebrityRecord
    rank: int
    rating_gain: int


@dataclass(frozen=True)
class AdminRecord:
    email: str
    role: str | None
    is_active: bool


@dataclass(frozen=True)
class WikipediaSummary:
    """Title, intro extract and thumbnail for one Wikipedia page."""

    title: str = ""
    bio: str | None = None
    image: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.title and self.bio is None and self.image is None


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One slice of an ordered listing."""

    items: list[T]
    total_count: int
    next_cursor: str | None = None
    extra: dict[str, object] = field(default_factory=dict)


def utc_now() -> datetime:
    """Naive UTC timestamp, the form stored in every table."""
    return datetime.now(UTC).replace(tzinfo=None)


def new_record_id() -> str:
    return str(uuid.uuid4())


def validate_celebrity_id(value: object, *, field_name: str = "celebrity_id") -> str:
    """Return the canonical string form of a UUID identifier or raise ValidationError."""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a UUID string")
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be a UUID, got {value!r}") from exc


def matchup_key(celeb_a_id: str, celeb_b_id: str) -> str:
    """Order-independent key for a pair, used for head-to-head lookups."""
    return "|".join(sorted((celeb_a_id, celeb_b_id)))


def slugify(name: str) -> str:
    return _SLUG_INVALID_RUN.sub("-", name.lower()).strip("-")


__all__ = [
    "DEFAULT_RATING",
    "AdminRecord",
    "CelebrityRecord",
    "CelebrityStatus",
    "Climber",
    "MatchOutcomeRecord",
    "Page",
    "RankedCelebrity",
    "SkipEventRecord",
    "SkipStat",
    "WikipediaSummary",
    "Winner",
    "matchup_key",
    "new_record_id",
    "slugify",
    "utc_now",
    "validate_celebrity_id",
]
