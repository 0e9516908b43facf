"""match_outcomes and skip_events table models."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import MatchOutcomeRecord, SkipEventRecord, Winner
from models.base import Base
from models.mixins import MatchupEventMixin


class MatchOutcome(MatchupEventMixin, Base):
    """Append-only log of recorded votes with before/after ratings."""

    __tablename__ = "match_outcomes"
    __table_args__ = (
        CheckConstraint("winner IN ('A', 'B')", name="ck_match_outcomes_winner"),
        CheckConstraint("k_factor >= 1 AND k_factor <= 64", name="ck_match_outcomes_k_factor"),
        Index("idx_match_outcomes_event_time", "event_time"),
        Index("idx_match_outcomes_matchup_key", "matchup_key"),
    )

    winner: Mapped[str] = mapped_column(String(1), nullable=False)
    k_factor: Mapped[int] = mapped_column(Integer, nullable=False)
    celeb_a_rating_before: Mapped[int] = mapped_column(Integer, nullable=False)
    celeb_b_rating_before: Mapped[int] = mapped_column(Integer, nullable=False)
    celeb_a_rating_after: Mapped[int] = mapped_column(Integer, nullable=False)
    celeb_b_rating_after: Mapped[int] = mapped_column(Integer, nullable=False)

    def to_record(self) -> MatchOutcomeRecord:
        return MatchOutcomeRecord(
            id=self.id,
            event_time=self.event_time,
            matchup_key=self.matchup_key,
            celeb_a_id=self.celeb_a_id,
            celeb_b_id=self.celeb_b_id,
            celeb_a_name=self.celeb_a_name,
            celeb_b_name=self.celeb_b_name,
            winner=Winner(self.winner),
            k_factor=self.k_factor,
            celeb_a_rating_before=self.celeb_a_rating_before,
            celeb_b_rating_before=self.celeb_b_rating_before,
            celeb_a_rating_after=self.celeb_a_rating_after,
            celeb_b_rating_after=self.celeb_b_rating_after,
            client_ip=self.client_ip,
        )


class SkipEvent(MatchupEventMixin, Base):
    """Append-only log of pairs a voter declined to judge."""

    __tablename__ = "skip_events"
    __table_args__ = (
        Index("idx_skip_events_event_time", "event_time"),
        Index("idx_skip_events_matchup_key", "matchup_key"),
    )

    def to_record(self) -> SkipEventRecord:
        return SkipEventRecord(
            id=self.id,
            event_time=self.event_time,
            matchup_key=self.matchup_key,
            celeb_a_id=self.celeb_a_id,
            celeb_b_id=self.celeb_b_id,
            celeb_a_name=self.celeb_a_name,
            celeb_b_name=self.celeb_b_name,
            client_ip=self.client_ip,
        )
