"""Record head-to-head votes: Elo update for both celebrities plus the audit row."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import (
    CelebrityRecord,
    MatchOutcomeRecord,
    Winner,
    matchup_key,
    new_record_id,
    utc_now,
    validate_celebrity_id,
)
from domain.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from domain.rate_limit import RateLimiter, RateLimitRule
from domain.ratings.elo.calculator import (
    EloParameters,
    build_match_deltas,
    coerce_winner,
    validate_k_factor,
)
from repositories.celebrity_repository import apply_match_result, fetch_celebrities_by_ids
from repositories.matchup_repository import insert_match_outcome
from services.snapshot import CelebritySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteResult:
    new_rating_a: int
    new_rating_b: int
    outcome: MatchOutcomeRecord


class MatchRecorder:
    """Apply one vote atomically.

    Both rating updates and the match-outcome row are written in a single
    database transaction, so readers never observe one side updated without
    the other. Overlapping concurrent votes are not serialized: each
    transaction reads the ratings it sees and the last commit wins.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        rate_limiter: RateLimiter,
        *,
        params: EloParameters,
        rate_limit_rule: RateLimitRule,
        snapshot: CelebritySnapshot | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._rate_limiter = rate_limiter
        self.params = params
        self.rate_limit_rule = rate_limit_rule
        self._snapshot = snapshot
        self._now = now

    def record_vote(
        self,
        celeb_a_id: str,
        celeb_b_id: str,
        winner: Winner | str,
        k_factor: int | None = None,
        *,
        client_ip: str = "unknown",
    ) -> VoteResult:
        celeb_a_id = validate_celebrity_id(celeb_a_id, field_name="celeb_a_id")
        celeb_b_id = validate_celebrity_id(celeb_b_id, field_name="celeb_b_id")
        if celeb_a_id == celeb_b_id:
            raise ValidationError("celeb_a_id and celeb_b_id must differ")
        winner = coerce_winner(winner)
        k_factor = validate_k_factor(self.params.k_factor if k_factor is None else k_factor)

        self._rate_limiter.enforce(f"vote:{client_ip}", self.rate_limit_rule)

        try:
            with self._session_factory() as session:
                with session.begin():
                    outcome, updated = self._apply(
                        session,
                        celeb_a_id=celeb_a_id,
                        celeb_b_id=celeb_b_id,
                        winner=winner,
                        k_factor=k_factor,
                        client_ip=client_ip,
                    )
        except IntegrityError as exc:
            logger.warning("vote %s vs %s rolled back: %s", celeb_a_id, celeb_b_id, exc.orig)
            raise ConflictError("Vote conflicted with a concurrent change; nothing was recorded") from exc
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while recording vote") from exc

        if self._snapshot is not None:
            for record in updated:
                self._snapshot.upsert(record)

        return VoteResult(
            new_rating_a=outcome.celeb_a_rating_after,
            new_rating_b=outcome.celeb_b_rating_after,
            outcome=outcome,
        )

    def _apply(
        self,
        session: Session,
        *,
        celeb_a_id: str,
        celeb_b_id: str,
        winner: Winner,
        k_factor: int,
        client_ip: str,
    ) -> tuple[MatchOutcomeRecord, list[CelebrityRecord]]:
        found = fetch_celebrities_by_ids(session, [celeb_a_id, celeb_b_id])
        celeb_a = found.get(celeb_a_id)
        celeb_b = found.get(celeb_b_id)
        if celeb_a is None or celeb_b is None:
            missing = [cid for cid in (celeb_a_id, celeb_b_id) if cid not in found]
            raise NotFoundError(f"Celebrity not found: {', '.join(missing)}")

        deltas = build_match_deltas(
            celeb_a.rating,
            celeb_b.rating,
            winner,
            k_factor,
            scale_factor=self.params.scale_factor,
        )
        now = self._now()

        updated_a = apply_match_result(
            session,
            celebrity_id=celeb_a_id,
            new_rating=deltas.a.new_rating,
            wins_delta=deltas.a.wins_delta,
            now=now,
        )
        updated_b = apply_match_result(
            session,
            celebrity_id=celeb_b_id,
            new_rating=deltas.b.new_rating,
            wins_delta=deltas.b.wins_delta,
            now=now,
        )
        if not (updated_a and updated_b):
            raise ConflictError("A celebrity was removed while the vote was being recorded")

        outcome = MatchOutcomeRecord(
            id=new_record_id(),
            event_time=now,
            matchup_key=matchup_key(celeb_a_id, celeb_b_id),
            celeb_a_id=celeb_a_id,
            celeb_b_id=celeb_b_id,
            celeb_a_name=celeb_a.name,
            celeb_b_name=celeb_b.name,
            winner=winner,
            k_factor=deltas.k_factor,
            celeb_a_rating_before=celeb_a.rating,
            celeb_b_rating_before=celeb_b.rating,
            celeb_a_rating_after=deltas.a.new_rating,
            celeb_b_rating_after=deltas.b.new_rating,
            client_ip=client_ip,
        )
        insert_match_outcome(session, outcome)

        refreshed = fetch_celebrities_by_ids(session, [celeb_a_id, celeb_b_id])
        return outcome, list(refreshed.values())
