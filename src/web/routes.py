"""
HTTP routes for voting, rankings, moderation and Wikipedia lookups
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from domain.errors import NotFoundError
from services.context import ServiceContext
from services.wikipedia import enrich_celebrity
from web.dependencies import get_admin_email, get_admin_secret, get_client_ip, get_context
from web.schemas import (
    CelebrityResponse,
    ClimberResponse,
    ConfirmedFlagRequest,
    ConfirmedVoteRequest,
    ConfirmedVoteResponse,
    MatchOutcomeResponse,
    MessageResponse,
    PairResponse,
    ProfileResponse,
    RankedCelebrityResponse,
    RankedPageResponse,
    SkipEventResponse,
    SkipEventsPageResponse,
    SkipRequest,
    SkipStatResponse,
    SkipStatsPageResponse,
    SuggestionRequest,
    SuggestionResponse,
    UnapprovedPageResponse,
    VoteRequest,
    VoteResponse,
    WikipediaBatchRequest,
    WikipediaSearchHitResponse,
    WikipediaSummaryResponse,
)

router = APIRouter()


@router.get("/health")
def health_check(context: ServiceContext = Depends(get_context)):
    return {"status": "healthy", "config": context.config.as_config_json()}


# Celebrities


@router.get("/api/celebrities", response_model=List[CelebrityResponse])
def list_celebrities(context: ServiceContext = Depends(get_context)):
    return [CelebrityResponse.model_validate(record) for record in context.catalogue.get_all_celebrities()]


@router.get("/api/celebrities/pair", response_model=PairResponse)
def random_pair(context: ServiceContext = Depends(get_context)):
    celeb_a, celeb_b = context.pair_selector.random_pair()
    return PairResponse(
        celeb_a=CelebrityResponse.model_validate(celeb_a),
        celeb_b=CelebrityResponse.model_validate(celeb_b),
    )


@router.get("/api/celebrities/ranked", response_model=RankedPageResponse)
def ranked_page(
    page_size: int = Query(default=24),
    cursor: Optional[str] = None,
    search: Optional[str] = None,
    context: ServiceContext = Depends(get_context),
):
    page = context.catalogue.get_ranked_page(page_size=page_size, cursor=cursor, search=search)
    return RankedPageResponse(
        items=[RankedCelebrityResponse.model_validate(entry) for entry in page.items],
        next_cursor=page.next_cursor,
        total_count=page.total_count,
    )


@router.get("/api/celebrities/search", response_model=List[CelebrityResponse])
def search_celebrities(q: str, context: ServiceContext = Depends(get_context)):
    return [CelebrityResponse.model_validate(record) for record in context.catalogue.search(q)]


@router.get("/api/celebrities/by-slug/{slug}", response_model=CelebrityResponse)
def celebrity_by_slug(slug: str, context: ServiceContext = Depends(get_context)):
    record = context.catalogue.get_by_slug(slug)
    if record is None:
        raise NotFoundError(f"Celebrity not found: {slug}")
    return CelebrityResponse.model_validate(record)


@router.post("/api/celebrities/suggestions", response_model=SuggestionResponse)
def suggest_celebrity(
    body: SuggestionRequest,
    client_ip: str = Depends(get_client_ip),
    context: ServiceContext = Depends(get_context),
):
    result = context.catalogue.suggest(
        body.name,
        body.wikipedia_page_id,
        client_ip=client_ip,
    )
    return SuggestionResponse(
        success=result.success,
        message=result.message,
        celebrity_id=None if result.celebrity is None else result.celebrity.id,
    )


@router.get("/api/celebrities/{celebrity_id}", response_model=CelebrityResponse)
def celebrity_by_id(celebrity_id: str, context: ServiceContext = Depends(get_context)):
    return CelebrityResponse.model_validate(context.catalogue.require(celebrity_id))


@router.get("/api/celebrities/{celebrity_id}/profile", response_model=ProfileResponse)
def celebrity_profile(celebrity_id: str, context: ServiceContext = Depends(get_context)):
    return ProfileResponse.model_validate(context.catalogue.get_profile(celebrity_id))


@router.get("/api/celebrities/{celebrity_id}/enriched", response_model=CelebrityResponse)
async def enriched_celebrity(celebrity_id: str, context: ServiceContext = Depends(get_context)):
    record = context.catalogue.require(celebrity_id)
    return CelebrityResponse.model_validate(await enrich_celebrity(context.wikipedia, record))


@router.post("/api/celebrities/{celebrity_id}/confirmed-votes", response_model=ConfirmedVoteResponse)
def vote_confirmed_vaper(
    celebrity_id: str,
    body: ConfirmedVoteRequest,
    client_ip: str = Depends(get_client_ip),
    context: ServiceContext = Depends(get_context),
):
    counts = context.catalogue.vote_confirmed_vaper(celebrity_id, body.is_vaper, client_ip=client_ip)
    return ConfirmedVoteResponse(yes_votes=counts.yes_votes, no_votes=counts.no_votes)


@router.delete("/api/celebrities/{celebrity_id}/confirmed-votes", response_model=CelebrityResponse)
def reset_confirmed_votes(
    celebrity_id: str,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    context: ServiceContext = Depends(get_context),
):
    return CelebrityResponse.model_validate(
        context.moderation.reset_confirmed_votes(celebrity_id, admin_secret)
    )


@router.put("/api/celebrities/{celebrity_id}/confirmed-flag", response_model=CelebrityResponse)
def set_confirmed_flag(
    celebrity_id: str,
    body: ConfirmedFlagRequest,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    context: ServiceContext = Depends(get_context),
):
    return CelebrityResponse.model_validate(
        context.moderation.set_confirmed_flag(celebrity_id, body.value, admin_secret)
    )


# Votes and matchups


@router.post("/api/votes", response_model=VoteResponse)
def record_vote(
    body: VoteRequest,
    client_ip: str = Depends(get_client_ip),
    context: ServiceContext = Depends(get_context),
):
    result = context.match_recorder.record_vote(
        body.celeb_a_id,
        body.celeb_b_id,
        body.winner,
        body.k_factor,
        client_ip=client_ip,
    )
    return VoteResponse(
        new_rating_a=result.new_rating_a,
        new_rating_b=result.new_rating_b,
        match_id=result.outcome.id,
    )


@router.post("/api/skips", response_model=MessageResponse)
def log_skip(
    body: SkipRequest,
    client_ip: str = Depends(get_client_ip),
    context: ServiceContext = Depends(get_context),
):
    skip = context.catalogue.log_skip(body.celeb_a_id, body.celeb_b_id, client_ip=client_ip)
    return MessageResponse(message=f"Skip recorded for {skip.matchup_key}")


@router.get("/api/matchups/recent", response_model=List[MatchOutcomeResponse])
def recent_matchups(limit: int = 100, context: ServiceContext = Depends(get_context)):
    return [
        MatchOutcomeResponse.model_validate(outcome)
        for outcome in context.catalogue.get_recent_matchups(limit)
    ]


@router.get("/api/climbers", response_model=List[ClimberResponse])
def top_climbers(
    limit: int = 5,
    hours_back: int = 24,
    context: ServiceContext = Depends(get_context),
):
    return [
        ClimberResponse.model_validate(climber)
        for climber in context.catalogue.get_top_climbers(limit=limit, hours_back=hours_back)
    ]


# Wikipedia


@router.get("/api/wikipedia/search", response_model=List[WikipediaSearchHitResponse])
async def search_wikipedia(
    q: str,
    limit: int = 5,
    client_ip: str = Depends(get_client_ip),
    context: ServiceContext = Depends(get_context),
):
    hits = await context.wikipedia.search(q, limit, client_ip=client_ip)
    return [WikipediaSearchHitResponse.model_validate(hit) for hit in hits]


@router.get("/api/wikipedia/pages/{page_id}", response_model=WikipediaSummaryResponse)
async def wikipedia_page(page_id: str, context: ServiceContext = Depends(get_context)):
    return WikipediaSummaryResponse.model_validate(await context.wikipedia.fetch(page_id))


@router.post("/api/wikipedia/pages/batch", response_model=List[WikipediaSummaryResponse])
async def wikipedia_batch(body: WikipediaBatchRequest, context: ServiceContext = Depends(get_context)):
    summaries = await context.wikipedia.fetch_batch(body.page_ids)
    return [WikipediaSummaryResponse.model_validate(summary) for summary in summaries]


# Moderation


@router.get("/api/admin/suggestions", response_model=UnapprovedPageResponse)
def unapproved_celebrities(
    page_size: int = 10,
    cursor: Optional[str] = None,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    admin_email: Optional[str] = Depends(get_admin_email),
    context: ServiceContext = Depends(get_context),
):
    page = context.moderation.list_unapproved(
        admin_secret=admin_secret,
        admin_email=admin_email,
        page_size=page_size,
        cursor=cursor,
    )
    return UnapprovedPageResponse(
        items=[CelebrityResponse.model_validate(record) for record in page.items],
        next_cursor=page.next_cursor,
        total_count=page.total_count,
    )


@router.post("/api/admin/celebrities/{celebrity_id}/approve", response_model=MessageResponse)
def approve_celebrity(
    celebrity_id: str,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    admin_email: Optional[str] = Depends(get_admin_email),
    context: ServiceContext = Depends(get_context),
):
    context.moderation.approve(celebrity_id, admin_secret=admin_secret, admin_email=admin_email)
    return MessageResponse(message="Celebrity approved successfully")


@router.delete("/api/admin/celebrities/{celebrity_id}", response_model=MessageResponse)
def reject_celebrity(
    celebrity_id: str,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    admin_email: Optional[str] = Depends(get_admin_email),
    context: ServiceContext = Depends(get_context),
):
    context.moderation.reject(celebrity_id, admin_secret=admin_secret, admin_email=admin_email)
    return MessageResponse(message="Celebrity rejected and removed")


@router.get("/api/admin/skips", response_model=SkipEventsPageResponse)
def skip_events(
    page_size: int = 10,
    page_number: int = 0,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    admin_email: Optional[str] = Depends(get_admin_email),
    context: ServiceContext = Depends(get_context),
):
    page = context.moderation.get_skip_events_page(
        admin_secret=admin_secret,
        admin_email=admin_email,
        page_size=page_size,
        page_number=page_number,
    )
    return SkipEventsPageResponse(
        items=[SkipEventResponse.model_validate(skip) for skip in page.items],
        total_count=page.total_count,
    )


@router.get("/api/admin/skips/stats", response_model=SkipStatsPageResponse)
def skip_stats(
    page_size: int = 10,
    page_number: int = 0,
    admin_secret: Optional[str] = Depends(get_admin_secret),
    admin_email: Optional[str] = Depends(get_admin_email),
    context: ServiceContext = Depends(get_context),
):
    page = context.moderation.get_skip_stats(
        admin_secret=admin_secret,
        admin_email=admin_email,
        page_size=page_size,
        page_number=page_number,
    )
    return SkipStatsPageResponse(
        items=[SkipStatResponse.model_validate(stat) for stat in page.items],
        total_count=page.total_count,
    )
