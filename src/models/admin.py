"""admins table model."""

from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.mixins import TimestampMixin


class Admin(TimestampMixin, Base):
    """Moderators allowed to approve, reject and flag celebrities."""

    __tablename__ = "admins"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
