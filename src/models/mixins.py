"""SQLAlchemy mixins for common timestamp and matchup-event columns."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from domain.common import utc_now


class TimestampMixin:
    """created_at/updated_at columns for mutable records."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )


class MatchupEventMixin:
    """Common columns for append-only pair events (votes and skips).

    Celebrity ids are stored without foreign keys so the log outlives a
    rejected celebrity; names are denormalised for the same reason.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    matchup_key: Mapped[str] = mapped_column(String(80), nullable=False)
    celeb_a_id: Mapped[str] = mapped_column(String(36), nullable=False)
    celeb_b_id: Mapped[str] = mapped_column(String(36), nullable=False)
    celeb_a_name: Mapped[str] = mapped_column(String(256), nullable=False)
    celeb_b_name: Mapped[str] = mapped_column(String(256), nullable=False)
    client_ip: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
