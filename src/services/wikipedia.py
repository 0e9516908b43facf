"""Wikipedia summaries (intro extract + thumbnail) behind two cache levels.

L1 is an in-process TTL cache, L2 the ``wikipedia_cache`` table. Upstream
calls are throttled by a global and a per-page limiter; while limited, a
stale L1 entry is served instead of waiting.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.cache import TTLCache
from domain.common import CelebrityRecord, WikipediaSummary, utc_now
from domain.config import WikipediaConfig
from domain.errors import RateLimitedError, UpstreamError, ValidationError
from domain.rate_limit import RateLimiter, RateLimitRule
from repositories.wikipedia_cache_repository import (
    fetch_cached_page,
    fetch_cached_pages,
    upsert_cached_page,
)

logger = logging.getLogger(__name__)

EMPTY_SUMMARY = WikipediaSummary()
MIN_SEARCH_QUERY_LENGTH = 2
MAX_SEARCH_LIMIT = 20
SEARCH_THUMBNAIL_SIZE = 120


@dataclass(frozen=True)
class WikipediaSearchHit:
    page_id: str
    title: str
    thumbnail: str | None = None


@dataclass(frozen=True)
class WikipediaRules:
    global_rule: RateLimitRule
    page_rule: RateLimitRule
    search_rule: RateLimitRule


def validate_page_id(page_id: object) -> str:
    text = str(page_id).strip() if page_id is not None else ""
    if not text.isdigit():
        raise ValidationError(f"Wikipedia page id must be numeric, got {page_id!r}")
    return text


class WikipediaPersistentCache:
    """Second-level cache in the database. Failures are logged and treated as misses."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        ttl_days: int,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.ttl_days = ttl_days
        self._now = now

    def get(self, page_id: str) -> WikipediaSummary | None:
        try:
            with self._session_factory() as session:
                return fetch_cached_page(session, page_id, now=self._now())
        except SQLAlchemyError:
            logger.exception("Failed to read Wikipedia cache for %s", page_id)
            return None

    def get_many(self, page_ids: Sequence[str]) -> dict[str, WikipediaSummary]:
        try:
            with self._session_factory() as session:
                return fetch_cached_pages(session, page_ids, now=self._now())
        except SQLAlchemyError:
            logger.exception("Failed to read Wikipedia cache for %d pages", len(page_ids))
            return {}

    def put(self, page_id: str, summary: WikipediaSummary) -> None:
        try:
            with self._session_factory() as session:
                with session.begin():
                    upsert_cached_page(
                        session,
                        page_id=page_id,
                        summary=summary,
                        now=self._now(),
                        ttl_days=self.ttl_days,
                    )
        except SQLAlchemyError:
            logger.exception("Failed to persist Wikipedia cache for %s", page_id)


class WikipediaClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        persistent_cache: WikipediaPersistentCache,
        rate_limiter: RateLimiter,
        *,
        config: WikipediaConfig,
        rules: WikipediaRules,
        memory_ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._http = http_client
        self._persistent = persistent_cache
        self._rate_limiter = rate_limiter
        self.config = config
        self.rules = rules
        self._memory: TTLCache[str, WikipediaSummary] = TTLCache(memory_ttl_seconds, clock=clock)
        self._in_flight: dict[str, asyncio.Future[WikipediaSummary]] = {}
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fetch(self, page_id: str) -> WikipediaSummary:
        """Summary for one page; concurrent callers for the same page share one lookup."""
        page_id = validate_page_id(page_id)
        live = self._memory.lookup(page_id)
        if live is not None:
            return live.value

        pending = self._in_flight.get(page_id)
        if pending is not None:
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._resolve(page_id))
        self._in_flight[page_id] = task
        try:
            return await task
        finally:
            self._in_flight.pop(page_id, None)

    async def fetch_batch(self, page_ids: Sequence[str]) -> list[WikipediaSummary]:
        """Summaries in input order; a page that cannot be fetched yields an empty summary."""
        if not page_ids:
            return []
        page_ids = [validate_page_id(page_id) for page_id in page_ids]
        found: dict[str, WikipediaSummary] = {}

        uncached: list[str] = []
        for page_id in dict.fromkeys(page_ids):
            live = self._memory.lookup(page_id)
            if live is not None:
                found[page_id] = live.value
            else:
                uncached.append(page_id)

        if uncached:
            persisted = await asyncio.to_thread(self._persistent.get_many, uncached)
            for page_id, summary in persisted.items():
                self._memory.set(page_id, summary)
                found[page_id] = summary
            uncached = [page_id for page_id in uncached if page_id not in persisted]

        batch_size = self.config.batch_size
        for start in range(0, len(uncached), batch_size):
            batch = uncached[start : start + batch_size]
            found.update(await self._fetch_chunk(batch))

        return [found.get(page_id, EMPTY_SUMMARY) for page_id in page_ids]

    async def search(
        self,
        query: str,
        limit: int = 5,
        *,
        client_ip: str = "unknown",
    ) -> list[WikipediaSearchHit]:
        query = query.strip()
        if len(query) < MIN_SEARCH_QUERY_LENGTH:
            raise ValidationError(f"query must be at least {MIN_SEARCH_QUERY_LENGTH} characters")
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_SEARCH_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_SEARCH_LIMIT}")

        self._rate_limiter.enforce(f"wiki-search:{client_ip}", self.rules.search_rule)

        params = {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": query,
            "gsrlimit": str(limit),
            "prop": "pageimages",
            "piprop": "thumbnail",
            "pithumbsize": str(SEARCH_THUMBNAIL_SIZE),
        }
        try:
            data = await self._get(params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Wikipedia search for %r failed: %s", query, exc)
            raise UpstreamError(f"Wikipedia search failed: {exc}") from exc

        pages = (data.get("query") or {}).get("pages") or {}
        ordered = sorted(pages.values(), key=lambda page: page.get("index", 0))
        return [
            WikipediaSearchHit(
                page_id=str(page["pageid"]),
                title=page["title"],
                thumbnail=(page.get("thumbnail") or {}).get("source"),
            )
            for page in ordered
            if page.get("title") and page.get("pageid") is not None
        ]

    def invalidate(self, page_id: str) -> None:
        self._memory.invalidate(page_id)

    async def _resolve(self, page_id: str) -> WikipediaSummary:
        persisted = await asyncio.to_thread(self._persistent.get, page_id)
        if persisted is not None:
            self._memory.set(page_id, persisted)
            return persisted

        stale_entry = self._memory.lookup_stale(page_id)
        stale = None if stale_entry is None else stale_entry.value
        if not await self._acquire_quota(page_id, has_stale=stale is not None):
            return stale

        try:
            data = await self._get(self._summary_params([page_id]))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error fetching Wikipedia data for page %s: %s", page_id, exc)
            return stale if stale is not None else EMPTY_SUMMARY

        pages = (data.get("query") or {}).get("pages")
        if not pages:
            return EMPTY_SUMMARY
        page = pages.get(page_id) or next(iter(pages.values()))
        summary = _parse_page(page)
        if summary is None:
            return EMPTY_SUMMARY
        await self._remember(page_id, summary)
        return summary

    async def _acquire_quota(self, page_id: str, *, has_stale: bool) -> bool:
        """Wait for both limiters to admit a call.

        Returns False when limited and a stale value can be served instead.
        Raises RateLimitedError once the retries are exhausted.
        """
        max_retries = self.config.max_retries
        for attempt in range(max_retries + 1):
            global_result = self._rate_limiter.check("wikipedia:global", self.rules.global_rule)
            page_result = self._rate_limiter.check(f"wikipedia:{page_id}", self.rules.page_rule)
            if global_result.allowed and page_result.allowed:
                return True

            retry_ms = max(global_result.retry_after_ms or 0, page_result.retry_after_ms or 0)
            if has_stale:
                return False
            if attempt == max_retries:
                error = RateLimitedError(retry_ms)
                raise RateLimitedError(
                    retry_ms,
                    f"Wikipedia rate limit exceeded. Retry after {error.retry_after_seconds}s.",
                )

            backoff = self.config.initial_retry_delay_seconds * 2**attempt
            logger.debug("Wikipedia limited for page %s, backing off attempt=%d", page_id, attempt)
            await self._sleep(min(backoff, retry_ms / 1000.0))
        return True

    async def _fetch_chunk(self, batch: list[str]) -> dict[str, WikipediaSummary]:
        global_result = self._rate_limiter.check("wikipedia:global", self.rules.global_rule)
        if not global_result.allowed:
            outcomes = await asyncio.gather(
                *(self.fetch(page_id) for page_id in batch),
                return_exceptions=True,
            )
            results: dict[str, WikipediaSummary] = {}
            for page_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning("Wikipedia fetch for page %s failed: %s", page_id, outcome)
                    results[page_id] = EMPTY_SUMMARY
                else:
                    results[page_id] = outcome
            return results

        try:
            data = await self._get(self._summary_params(batch))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error fetching Wikipedia batch of %d pages: %s", len(batch), exc)
            return {page_id: EMPTY_SUMMARY for page_id in batch}

        pages = (data.get("query") or {}).get("pages") or {}
        results = {}
        for page_id in batch:
            summary = _parse_page(pages.get(page_id))
            if summary is None:
                results[page_id] = EMPTY_SUMMARY
                continue
            await self._remember(page_id, summary)
            results[page_id] = summary
        return results

    async def _remember(self, page_id: str, summary: WikipediaSummary) -> None:
        self._memory.set(page_id, summary)
        await asyncio.to_thread(self._persistent.put, page_id, summary)

    def _summary_params(self, page_ids: Sequence[str]) -> dict[str, str]:
        return {
            "action": "query",
            "format": "json",
            "pageids": "|".join(page_ids),
            "prop": "extracts|pageimages",
            "exintro": "true",
            "explaintext": "true",
            "piprop": "thumbnail",
            "pithumbsize": str(self.config.thumbnail_size),
        }

    async def _get(self, params: dict[str, str]) -> dict[str, Any]:
        response = await self._http.get(
            self.config.api_url,
            params=params,
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()


def _parse_page(page: dict[str, Any] | None) -> WikipediaSummary | None:
    if not page or "missing" in page or "invalid" in page:
        return None
    return WikipediaSummary(
        title=page.get("title") or "",
        bio=page.get("extract") or None,
        image=(page.get("thumbnail") or {}).get("source"),
    )


async def enrich_celebrity(client: WikipediaClient, celebrity: CelebrityRecord) -> CelebrityRecord:
    """Copy of ``celebrity`` with Wikipedia bio and image preferred over stored values."""
    if not celebrity.wikipedia_page_id:
        raise ValidationError("Celebrity does not have a Wikipedia page ID")
    summary = await client.fetch(celebrity.wikipedia_page_id)
    return replace(
        celebrity,
        image=summary.image or celebrity.image,
        bio=summary.bio or celebrity.bio,
    )


__all__ = [
    "EMPTY_SUMMARY",
    "WikipediaClient",
    "WikipediaPersistentCache",
    "WikipediaRules",
    "WikipediaSearchHit",
    "enrich_celebrity",
    "validate_page_id",
]
