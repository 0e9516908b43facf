"""Wire every service of one process from an AppConfig and a session factory."""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from sqlalchemy.orm import Session, sessionmaker

from domain.config import AppConfig
from domain.rate_limit import RateLimiter
from services.admins import AdminDirectory, AdminGuard
from services.catalogue import CatalogueRules, CelebrityCatalogue
from services.match_recorder import MatchRecorder
from services.moderation import ModerationService
from services.pair_selector import PairSelector
from services.snapshot import CelebritySnapshot
from services.wikipedia import WikipediaClient, WikipediaPersistentCache, WikipediaRules


@dataclass
class ServiceContext:
    """Process-owned state: caches and limiter buckets live here, not in module globals."""

    config: AppConfig
    session_factory: sessionmaker[Session]
    rate_limiter: RateLimiter
    snapshot: CelebritySnapshot
    pair_selector: PairSelector
    match_recorder: MatchRecorder
    catalogue: CelebrityCatalogue
    admins: AdminDirectory
    moderation: ModerationService
    wikipedia: WikipediaClient

    async def aclose(self) -> None:
        await self.wikipedia.aclose()


def build_service_context(
    config: AppConfig,
    session_factory: sessionmaker[Session],
    *,
    clock: Callable[[], float] = time.monotonic,
    rng: random.Random | None = None,
    http_client: httpx.AsyncClient | None = None,
    admin_secret: str | None = None,
) -> ServiceContext:
    rate_limiter = RateLimiter(clock=clock)
    snapshot = CelebritySnapshot(
        session_factory,
        ttl_seconds=config.cache.entity_snapshot_ttl_seconds,
        clock=clock,
    )
    admins = AdminDirectory(session_factory, ttl_seconds=config.cache.admin_ttl_seconds, clock=clock)
    guard = AdminGuard(admin_secret if admin_secret is not None else config.admin.read_secret(), admins)

    wikipedia = WikipediaClient(
        http_client or httpx.AsyncClient(timeout=config.wikipedia.timeout_seconds),
        WikipediaPersistentCache(
            session_factory,
            ttl_days=config.cache.wikipedia_persistent_ttl_days,
        ),
        rate_limiter,
        config=config.wikipedia,
        rules=WikipediaRules(
            global_rule=config.rate_limit("wikipedia_global"),
            page_rule=config.rate_limit("wikipedia_page"),
            search_rule=config.rate_limit("wiki_search"),
        ),
        memory_ttl_seconds=config.cache.wikipedia_memory_ttl_seconds,
        clock=clock,
    )

    return ServiceContext(
        config=config,
        session_factory=session_factory,
        rate_limiter=rate_limiter,
        snapshot=snapshot,
        pair_selector=PairSelector(snapshot, rng=rng),
        match_recorder=MatchRecorder(
            session_factory,
            rate_limiter,
            params=config.rating,
            rate_limit_rule=config.rate_limit("vote"),
            snapshot=snapshot,
        ),
        catalogue=CelebrityCatalogue(
            session_factory,
            snapshot,
            rate_limiter,
            rules=CatalogueRules(
                suggest=config.rate_limit("suggest"),
                vaper_vote=config.rate_limit("vaper_vote"),
                skip=config.rate_limit("skip"),
            ),
            initial_rating=config.rating.initial_rating,
        ),
        admins=admins,
        moderation=ModerationService(session_factory, snapshot, guard),
        wikipedia=wikipedia,
    )
