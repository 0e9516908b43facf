"""Tests for the cached, rate-limited Wikipedia client."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta

import httpx
import pytest
from sqlalchemy.orm import Session, sessionmaker

from domain.common import CelebrityRecord, CelebrityStatus, WikipediaSummary
from domain.config import WikipediaConfig
from domain.errors import RateLimitedError, UpstreamError, ValidationError
from domain.rate_limit import RateLimiter, RateLimitRule
from services.wikipedia import (
    EMPTY_SUMMARY,
    WikipediaClient,
    WikipediaPersistentCache,
    WikipediaRules,
    enrich_celebrity,
)

from conftest import FakeClock

PAGES = {
    "100": {"pageid": 100, "title": "Alpha Person", "extract": "Alpha is a singer.",
            "thumbnail": {"source": "https://img.example/alpha.jpg"}},
    "200": {"pageid": 200, "title": "Bravo Person", "extract": "Bravo acts."},
}


class FakeWikipedia:
    """Answers the query API from PAGES and records every request."""

    def __init__(self, *, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "boom"})

        params = request.url.params
        if params.get("generator") == "search":
            return httpx.Response(
                200,
                json={
                    "query": {
                        "pages": {
                            "200": {"pageid": 200, "title": "Bravo Person", "index": 2},
                            "100": {
                                "pageid": 100,
                                "title": "Alpha Person",
                                "index": 1,
                                "thumbnail": {"source": "https://img.example/a-small.jpg"},
                            },
                        }
                    }
                },
            )

        pages = {}
        for page_id in params["pageids"].split("|"):
            pages[page_id] = PAGES.get(page_id, {"pageid": int(page_id), "missing": ""})
        return httpx.Response(200, json={"query": {"pages": pages}})


class Harness:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: FakeClock,
        fake: FakeWikipedia,
        *,
        page_max_calls: int = 10,
        global_max_calls: int = 100,
        batch_size: int = 50,
        persistent_now: list[datetime] | None = None,
        memory_ttl_seconds: float = 3_600.0,
    ) -> None:
        self.sleeps: list[float] = []
        self.persistent_now = persistent_now or [datetime(2026, 1, 1)]

        async def fake_sleep(seconds: float) -> None:
            self.sleeps.append(seconds)

        self.client = WikipediaClient(
            httpx.AsyncClient(transport=httpx.MockTransport(fake)),
            WikipediaPersistentCache(session_factory, ttl_days=180, now=lambda: self.persistent_now[0]),
            RateLimiter(clock=clock),
            config=WikipediaConfig(max_retries=2, initial_retry_delay_seconds=1.0, batch_size=batch_size),
            rules=WikipediaRules(
                global_rule=RateLimitRule(window_ms=60_000, max_calls=global_max_calls),
                page_rule=RateLimitRule(window_ms=60_000, max_calls=page_max_calls),
                search_rule=RateLimitRule(window_ms=60_000, max_calls=2),
            ),
            memory_ttl_seconds=memory_ttl_seconds,
            clock=clock,
            sleep=fake_sleep,
        )


def test_fetch_parses_and_caches_in_memory(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake)

    async def scenario() -> tuple[WikipediaSummary, WikipediaSummary]:
        first = await harness.client.fetch("100")
        second = await harness.client.fetch("100")
        await harness.client.aclose()
        return first, second

    first, second = asyncio.run(scenario())
    assert first == WikipediaSummary(
        title="Alpha Person",
        bio="Alpha is a singer.",
        image="https://img.example/alpha.jpg",
    )
    assert second == first
    assert len(fake.requests) == 1
    request = fake.requests[0]
    assert request.url.params["prop"] == "extracts|pageimages"
    assert request.url.params["pithumbsize"] == "500"
    assert request.headers["user-agent"].startswith("vaperank/")


def test_persistent_cache_survives_new_client(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    asyncio.run(Harness(session_factory, clock, fake).client.fetch("200"))

    second_fake = FakeWikipedia()
    summary = asyncio.run(Harness(session_factory, clock, second_fake).client.fetch("200"))
    assert summary.title == "Bravo Person"
    assert summary.image is None
    assert second_fake.requests == []


def test_missing_page_and_upstream_failure_degrade_to_empty(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    missing = asyncio.run(Harness(session_factory, clock, FakeWikipedia()).client.fetch("999"))
    assert missing == EMPTY_SUMMARY
    assert missing.is_empty

    failing = asyncio.run(
        Harness(session_factory, clock, FakeWikipedia(status_code=503)).client.fetch("100")
    )
    assert failing == EMPTY_SUMMARY


def test_concurrent_fetches_share_one_request(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake)

    async def scenario() -> list[WikipediaSummary]:
        return await asyncio.gather(*(harness.client.fetch("100") for _ in range(5)))

    results = asyncio.run(scenario())
    assert len({result.title for result in results}) == 1
    assert len(fake.requests) == 1


def test_invalid_page_id_rejected(session_factory: sessionmaker[Session], clock: FakeClock) -> None:
    harness = Harness(session_factory, clock, FakeWikipedia())
    with pytest.raises(ValidationError):
        asyncio.run(harness.client.fetch("abc"))


def test_rate_limited_fetch_backs_off_then_fails(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake, page_max_calls=1)

    async def scenario() -> None:
        await harness.client.fetch("999")
        await harness.client.fetch("999")

    with pytest.raises(RateLimitedError) as exc_info:
        asyncio.run(scenario())
    assert "Wikipedia rate limit exceeded" in str(exc_info.value)
    assert harness.sleeps == [1.0, 2.0]
    assert len(fake.requests) == 1


def test_rate_limited_fetch_serves_stale_value(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    persistent_now = [datetime(2026, 1, 1)]
    harness = Harness(
        session_factory,
        clock,
        fake,
        page_max_calls=1,
        persistent_now=persistent_now,
        memory_ttl_seconds=10.0,
    )

    async def scenario() -> WikipediaSummary:
        await harness.client.fetch("100")
        clock.advance(11.0)
        persistent_now[0] += timedelta(days=181)
        return await harness.client.fetch("100")

    stale = asyncio.run(scenario())
    assert stale.title == "Alpha Person"
    assert harness.sleeps == []
    assert len(fake.requests) == 1


def test_fetch_batch_preserves_order_and_isolates_missing(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake, batch_size=2)

    results = asyncio.run(harness.client.fetch_batch(["200", "999", "100", "200"]))
    assert [result.title for result in results] == ["Bravo Person", "", "Alpha Person", "Bravo Person"]
    assert len(fake.requests) == 2
    assert asyncio.run(harness.client.fetch_batch([])) == []


def test_fetch_batch_upstream_failure_yields_empty_items(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    harness = Harness(session_factory, clock, FakeWikipedia(status_code=500))
    results = asyncio.run(harness.client.fetch_batch(["100", "200"]))
    assert results == [EMPTY_SUMMARY, EMPTY_SUMMARY]


def test_fetch_batch_falls_back_to_single_fetches_when_limited(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake, global_max_calls=1)

    async def scenario() -> list[WikipediaSummary]:
        await harness.client.fetch("200")
        return await harness.client.fetch_batch(["100"])

    results = asyncio.run(scenario())
    assert results == [EMPTY_SUMMARY]
    assert len(fake.requests) == 1


def test_search_returns_hits_in_rank_order(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    fake = FakeWikipedia()
    harness = Harness(session_factory, clock, fake)

    hits = asyncio.run(harness.client.search("person", 5, client_ip="1.2.3.4"))
    assert [(hit.page_id, hit.title) for hit in hits] == [("100", "Alpha Person"), ("200", "Bravo Person")]
    assert hits[0].thumbnail == "https://img.example/a-small.jpg"
    assert fake.requests[0].url.params["gsrlimit"] == "5"


def test_search_validation_rate_limit_and_upstream_errors(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    harness = Harness(session_factory, clock, FakeWikipedia())
    with pytest.raises(ValidationError):
        asyncio.run(harness.client.search("a"))
    with pytest.raises(ValidationError):
        asyncio.run(harness.client.search("valid", 21))

    asyncio.run(harness.client.search("person", client_ip="9.9.9.9"))
    asyncio.run(harness.client.search("person", client_ip="9.9.9.9"))
    with pytest.raises(RateLimitedError):
        asyncio.run(harness.client.search("person", client_ip="9.9.9.9"))

    failing = Harness(session_factory, clock, FakeWikipedia(status_code=502))
    with pytest.raises(UpstreamError):
        asyncio.run(failing.client.search("person"))


def test_enrich_celebrity_prefers_wikipedia_values(
    session_factory: sessionmaker[Session],
    clock: FakeClock,
) -> None:
    harness = Harness(session_factory, clock, FakeWikipedia())
    now = datetime(2026, 1, 1)
    celebrity = CelebrityRecord(
        id="5f0c8f5e-3f4c-4a44-9d0a-5b8e7f1e2a11",
        name="Bravo Person",
        slug="bravo-person",
        wikipedia_page_id="200",
        image="https://img.example/stored.jpg",
        bio=None,
        rating=1000,
        wins=0,
        matches=0,
        vapes_votes=0,
        does_not_vape_votes=0,
        confirmed_vaper=False,
        confirmed_vaper_yes_votes=0,
        confirmed_vaper_no_votes=0,
        approved=True,
        status=CelebrityStatus.ACTIVE,
        created_at=now,
        updated_at=now,
    )

    enriched = asyncio.run(enrich_celebrity(harness.client, celebrity))
    assert enriched.bio == "Bravo acts."
    assert enriched.image == "https://img.example/stored.jpg"

    with pytest.raises(ValidationError):
        asyncio.run(enrich_celebrity(harness.client, replace(celebrity, wikipedia_page_id=None)))
