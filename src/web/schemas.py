"""Request and response bodies of the HTTP API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from domain.common import CelebrityStatus, Winner


def _iso_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() + "Z"


class CelebrityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: Optional[str] = None
    wikipedia_page_id: Optional[str] = None
    image: Optional[str] = None
    bio: Optional[str] = None
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

    @field_serializer("created_at", "updated_at")
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_utc(dt)


class PairResponse(BaseModel):
    celeb_a: CelebrityResponse
    celeb_b: CelebrityResponse


class RankedCelebrityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    celebrity: CelebrityResponse


class RankedPageResponse(BaseModel):
    items: List[RankedCelebrityResponse]
    next_cursor: Optional[str] = None
    total_count: int


class VaperLikelihoodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_likely_vaper: bool
    percentage: float
    total_votes: int


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    celebrity: CelebrityResponse
    rank: Optional[int] = None
    total_ranked: int
    win_rate: float
    win_rate_lower_bound: float
    confirmed_vaper_lower_bound: float
    matches_per_day: Optional[float] = None
    rating_percentile: Optional[float] = None
    vaper: VaperLikelihoodResponse


class VoteRequest(BaseModel):
    celeb_a_id: str
    celeb_b_id: str
    winner: str = Field(description="'A' or 'B'")
    k_factor: Optional[int] = None


class VoteResponse(BaseModel):
    new_rating_a: int
    new_rating_b: int
    match_id: str


class SkipRequest(BaseModel):
    celeb_a_id: str
    celeb_b_id: str


class MatchOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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

    @field_serializer("event_time")
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_utc(dt)


class SkipEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    event_time: datetime
    matchup_key: str
    celeb_a_id: str
    celeb_b_id: str
    celeb_a_name: str
    celeb_b_name: str

    @field_serializer("event_time")
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_utc(dt)


class SkipEventsPageResponse(BaseModel):
    items: List[SkipEventResponse]
    total_count: int


class SkipStatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    celebrity_id: str
    celebrity_name: str
    skip_count: int


class SkipStatsPageResponse(BaseModel):
    items: List[SkipStatResponse]
    total_count: int


class ClimberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    rating_gain: int
    celebrity: CelebrityResponse


class SuggestionRequest(BaseModel):
    name: str
    wikipedia_page_id: Optional[str] = None


class SuggestionResponse(BaseModel):
    success: bool
    message: str
    celebrity_id: Optional[str] = None


class ConfirmedVoteRequest(BaseModel):
    is_vaper: bool


class ConfirmedVoteResponse(BaseModel):
    yes_votes: int
    no_votes: int


class ConfirmedFlagRequest(BaseModel):
    value: bool


class UnapprovedPageResponse(BaseModel):
    items: List[CelebrityResponse]
    next_cursor: Optional[str] = None
    total_count: int


class WikipediaSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    bio: Optional[str] = None
    image: Optional[str] = None


class WikipediaBatchRequest(BaseModel):
    page_ids: List[str] = Field(default_factory=list)


class WikipediaSearchHitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page_id: str
    title: str
    thumbnail: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
