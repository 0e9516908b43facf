"""HTTP-level tests for the FastAPI application."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from db import create_db_engine, create_session_factory
from domain.common import CelebrityRecord, utc_now
from domain.config import DEFAULT_RATE_LIMITS, AppConfig
from domain.rate_limit import RateLimitRule
from repositories.admin_repository import upsert_admin
from services import build_service_context
from web import create_app

from conftest import FakeClock

AddCelebrity = Callable[..., CelebrityRecord]
SECRET = "web-secret"
ADMIN_EMAIL = "web-admin@example.org"


def _wikipedia_handler(request: httpx.Request) -> httpx.Response:
    page_id = request.url.params["pageids"]
    return httpx.Response(
        200,
        json={"query": {"pages": {page_id: {"pageid": int(page_id), "title": "Wiki Title", "extract": "Bio."}}}},
    )


@pytest.fixture
def client(session_factory: sessionmaker[Session], clock: FakeClock) -> TestClient:
    config = AppConfig(
        rate_limits={**DEFAULT_RATE_LIMITS, "vote": RateLimitRule(window_ms=60_000, max_calls=2)},
    )
    context = build_service_context(
        config,
        session_factory,
        clock=clock,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_wikipedia_handler)),
        admin_secret=SECRET,
    )
    return TestClient(create_app(context))


def test_health_reports_config(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["config"]["rating"]["default_k_factor"] == 32


def test_pair_requires_two_celebrities(client: TestClient, add_celebrity: AddCelebrity) -> None:
    assert client.get("/api/celebrities/pair").status_code == 503

    add_celebrity("Alpha")
    add_celebrity("Bravo")
    client.app.state.context.snapshot.invalidate()

    response = client.get("/api/celebrities/pair")
    assert response.status_code == 200
    body = response.json()
    assert {body["celeb_a"]["name"], body["celeb_b"]["name"]} == {"Alpha", "Bravo"}


def test_vote_flow_and_error_mapping(client: TestClient, add_celebrity: AddCelebrity) -> None:
    celeb_a = add_celebrity("Alpha")
    celeb_b = add_celebrity("Bravo")
    headers = {"x-forwarded-for": "7.7.7.7, 10.0.0.1"}

    response = client.post(
        "/api/votes",
        json={"celeb_a_id": celeb_a.id, "celeb_b_id": celeb_b.id, "winner": "A"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["new_rating_a"] == 1016
    assert response.json()["new_rating_b"] == 984

    invalid = client.post(
        "/api/votes",
        json={"celeb_a_id": celeb_a.id, "celeb_b_id": celeb_b.id, "winner": "C"},
        headers=headers,
    )
    assert invalid.status_code == 422

    missing = client.post(
        "/api/votes",
        json={"celeb_a_id": celeb_a.id, "celeb_b_id": str(uuid.uuid4()), "winner": "B"},
        headers=headers,
    )
    assert missing.status_code == 404

    limited = client.post(
        "/api/votes",
        json={"celeb_a_id": celeb_a.id, "celeb_b_id": celeb_b.id, "winner": "B"},
        headers=headers,
    )
    assert limited.status_code == 429
    assert limited.headers["retry-after"] == "60"

    other_ip = client.post(
        "/api/votes",
        json={"celeb_a_id": celeb_a.id, "celeb_b_id": celeb_b.id, "winner": "B"},
        headers={"x-real-ip": "8.8.8.8"},
    )
    assert other_ip.status_code == 200

    recent = client.get("/api/matchups/recent", params={"limit": 10})
    assert recent.status_code == 200
    assert [row["winner"] for row in recent.json()] == ["B", "A"]


def test_rankings_and_profile(client: TestClient, add_celebrity: AddCelebrity) -> None:
    top = add_celebrity("Top Star", rating=1300)
    add_celebrity("Second Star", rating=1100)

    page = client.get("/api/celebrities/ranked", params={"page_size": 1})
    assert page.status_code == 200
    body = page.json()
    assert body["items"][0]["rank"] == 1
    assert body["items"][0]["celebrity"]["name"] == "Top Star"
    assert body["next_cursor"] == "1"
    assert body["total_count"] == 2

    profile = client.get(f"/api/celebrities/{top.id}/profile")
    assert profile.status_code == 200
    assert profile.json()["rank"] == 1
    assert profile.json()["rating_percentile"] == pytest.approx(100.0)

    assert client.get("/api/celebrities/by-slug/second-star").json()["rating"] == 1100
    assert client.get(f"/api/celebrities/{uuid.uuid4()}").status_code == 404
    assert client.get("/api/celebrities/not-a-uuid").status_code == 422


def test_suggestion_and_moderation(
    client: TestClient,
    session_factory: sessionmaker[Session],
) -> None:
    with session_factory() as session:
        with session.begin():
            upsert_admin(session, email=ADMIN_EMAIL, role=None, is_active=True, now=utc_now())

    created = client.post("/api/celebrities/suggestions", json={"name": "Fresh Face"})
    assert created.status_code == 200
    assert created.json()["success"] is True
    celebrity_id = created.json()["celebrity_id"]

    assert client.get("/api/admin/suggestions").status_code == 401
    admin_headers = {"X-Admin-Secret": SECRET, "X-Admin-Email": ADMIN_EMAIL}
    queue = client.get("/api/admin/suggestions", headers=admin_headers)
    assert queue.status_code == 200
    assert [item["id"] for item in queue.json()["items"]] == [celebrity_id]

    approved = client.post(f"/api/admin/celebrities/{celebrity_id}/approve", headers=admin_headers)
    assert approved.status_code == 200
    assert client.get("/api/celebrities/search", params={"q": "fresh"}).json()[0]["id"] == celebrity_id

    flag = client.put(
        f"/api/celebrities/{celebrity_id}/confirmed-flag",
        json={"value": True},
        headers={"X-Admin-Secret": "wrong"},
    )
    assert flag.status_code == 401
    flag = client.put(
        f"/api/celebrities/{celebrity_id}/confirmed-flag",
        json={"value": True},
        headers={"X-Admin-Secret": SECRET},
    )
    assert flag.status_code == 200
    assert flag.json()["confirmed_vaper"] is True


def test_confirmed_votes_and_skips(client: TestClient, add_celebrity: AddCelebrity) -> None:
    celeb_a = add_celebrity("Alpha")
    celeb_b = add_celebrity("Bravo")

    vote = client.post(f"/api/celebrities/{celeb_a.id}/confirmed-votes", json={"is_vaper": True})
    assert vote.json() == {"yes_votes": 1, "no_votes": 0}

    skip = client.post("/api/skips", json={"celeb_a_id": celeb_a.id, "celeb_b_id": celeb_b.id})
    assert skip.status_code == 200


def test_wikipedia_page_endpoint(client: TestClient) -> None:
    response = client.get("/api/wikipedia/pages/42")
    assert response.status_code == 200
    assert response.json() == {"title": "Wiki Title", "bio": "Bio.", "image": None}
    assert client.get("/api/wikipedia/pages/abc").status_code == 422


def test_database_failure_maps_to_bad_gateway(tmp_path: Path, clock: FakeClock) -> None:
    broken = create_session_factory(create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'vaperank.db'}"))
    context = build_service_context(
        AppConfig(),
        broken,
        clock=clock,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_wikipedia_handler)),
        admin_secret=SECRET,
    )
    client = TestClient(create_app(context))

    for path in ("/api/celebrities/pair", "/api/celebrities", "/api/matchups/recent"):
        response = client.get(path)
        assert response.status_code == 502
        assert response.json()["error"] == "UpstreamError"
