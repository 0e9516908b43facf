"""celebrities table model."""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import DEFAULT_RATING, CelebrityRecord, CelebrityStatus
from models.base import Base
from models.mixins import TimestampMixin


class Celebrity(TimestampMixin, Base):
    """One votable celebrity with its rating and community counters."""

    __tablename__ = "celebrities"
    __table_args__ = (
        CheckConstraint("wins >= 0", name="ck_celebrities_wins"),
        CheckConstraint("matches >= wins", name="ck_celebrities_matches"),
        CheckConstraint(
            "vapes_votes >= 0 AND does_not_vape_votes >= 0",
            name="ck_celebrities_vape_votes",
        ),
        CheckConstraint(
            "confirmed_vaper_yes_votes >= 0 AND confirmed_vaper_no_votes >= 0",
            name="ck_celebrities_confirmed_votes",
        ),
        CheckConstraint("status IN ('active', 'retired')", name="ck_celebrities_status"),
        Index("idx_celebrities_approved_rating", "approved", "rating"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(256), nullable=True, unique=True, index=True)
    wikipedia_page_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_RATING)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    matches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vapes_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    does_not_vape_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    confirmed_vaper: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    confirmed_vaper_yes_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    confirmed_vaper_no_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=CelebrityStatus.ACTIVE.value,
    )

    def to_record(self) -> CelebrityRecord:
        return CelebrityRecord(
            id=self.id,
            name=self.name,
            slug=self.slug,
            wikipedia_page_id=self.wikipedia_page_id,
            image=self.image,
            bio=self.bio,
            rating=self.rating,
            wins=self.wins,
            matches=self.matches,
            vapes_votes=self.vapes_votes,
            does_not_vape_votes=self.does_not_vape_votes,
            confirmed_vaper=self.confirmed_vaper,
            confirmed_vaper_yes_votes=self.confirmed_vaper_yes_votes,
            confirmed_vaper_no_votes=self.confirmed_vaper_no_votes,
            approved=self.approved,
            status=CelebrityStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
