"""Administrative operations: the confirmed-vaper flag and the suggestion queue."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.common import CelebrityRecord, Page, SkipEventRecord, SkipStat, utc_now, validate_celebrity_id
from domain.errors import NotFoundError, UpstreamError, ValidationError
from repositories import celebrity_repository
from repositories.matchup_repository import fetch_skip_events_page, fetch_skip_stats
from services.admins import AdminGuard
from services.catalogue import parse_offset_cursor, validate_page_size
from services.snapshot import CelebritySnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MODERATION_PAGE_SIZE = 10
MAX_UNAPPROVED_PAGE_SIZE = 50
MAX_SKIP_PAGE_SIZE = 100


class ModerationService:
    """Every method checks credentials before touching the store.

    The confirmed flag and the vote reset only need the shared admin secret;
    the suggestion queue and skip reports also require an active admin e-mail.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        snapshot: CelebritySnapshot,
        guard: AdminGuard,
        *,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self.snapshot = snapshot
        self.guard = guard
        self._now = now

    def set_confirmed_flag(
        self,
        celebrity_id: str,
        value: bool,
        admin_secret: str | None,
    ) -> CelebrityRecord:
        celebrity_id = validate_celebrity_id(celebrity_id)
        if not isinstance(value, bool):
            raise ValidationError("value must be a boolean")
        self.guard.require_secret(admin_secret)

        record = self._update(
            "set confirmed flag",
            lambda session: celebrity_repository.set_confirmed_flag(
                session,
                celebrity_id=celebrity_id,
                value=value,
                now=self._now(),
            ),
        )
        if record is None:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")
        self.snapshot.upsert(record)
        logger.info("confirmed_vaper=%s for celebrity %s", value, celebrity_id)
        return record

    def reset_confirmed_votes(self, celebrity_id: str, admin_secret: str | None) -> CelebrityRecord:
        celebrity_id = validate_celebrity_id(celebrity_id)
        self.guard.require_secret(admin_secret)

        record = self._update(
            "reset confirmed votes",
            lambda session: celebrity_repository.reset_confirmed_votes(
                session,
                celebrity_id=celebrity_id,
                now=self._now(),
            ),
        )
        if record is None:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")
        self.snapshot.upsert(record)
        logger.info("confirmed-vaper votes reset for celebrity %s", celebrity_id)
        return record

    def list_unapproved(
        self,
        *,
        admin_secret: str | None,
        admin_email: str | None,
        page_size: int = DEFAULT_MODERATION_PAGE_SIZE,
        cursor: str | None = None,
    ) -> Page[CelebrityRecord]:
        page_size = validate_page_size(page_size, maximum=MAX_UNAPPROVED_PAGE_SIZE)
        self.guard.require_admin(admin_secret, admin_email)

        offset = parse_offset_cursor(cursor)
        pending = sorted(
            (record for record in self.snapshot.all() if not record.approved),
            key=lambda record: (record.created_at, record.id),
            reverse=True,
        )
        has_more = offset + page_size < len(pending)
        return Page(
            items=pending[offset : offset + page_size],
            total_count=len(pending),
            next_cursor=str(offset + page_size) if has_more else None,
        )

    def approve(
        self,
        celebrity_id: str,
        *,
        admin_secret: str | None,
        admin_email: str | None,
    ) -> None:
        celebrity_id = validate_celebrity_id(celebrity_id)
        admin = self.guard.require_admin(admin_secret, admin_email)

        approved = self._update(
            "approve celebrity",
            lambda session: celebrity_repository.set_approved(
                session,
                celebrity_id=celebrity_id,
                now=self._now(),
            ),
        )
        if not approved:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")
        self.snapshot.invalidate()
        logger.info("celebrity %s approved by %s", celebrity_id, admin.email)

    def reject(
        self,
        celebrity_id: str,
        *,
        admin_secret: str | None,
        admin_email: str | None,
    ) -> None:
        celebrity_id = validate_celebrity_id(celebrity_id)
        admin = self.guard.require_admin(admin_secret, admin_email)

        deleted = self._update(
            "reject celebrity",
            lambda session: celebrity_repository.delete_celebrity(session, celebrity_id=celebrity_id),
        )
        if not deleted:
            raise NotFoundError(f"Celebrity not found: {celebrity_id}")
        self.snapshot.invalidate()
        logger.info("celebrity %s rejected by %s", celebrity_id, admin.email)

    def get_skip_events_page(
        self,
        *,
        admin_secret: str | None,
        admin_email: str | None,
        page_size: int = DEFAULT_MODERATION_PAGE_SIZE,
        page_number: int = 0,
    ) -> Page[SkipEventRecord]:
        page_size = validate_page_size(page_size, maximum=MAX_SKIP_PAGE_SIZE)
        page_number = _validate_page_number(page_number)
        self.guard.require_admin(admin_secret, admin_email)

        try:
            with self._session_factory() as session:
                items, total = fetch_skip_events_page(
                    session,
                    page_size=page_size,
                    page_number=page_number,
                )
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while reading skip events") from exc
        return Page(items=items, total_count=total)

    def get_skip_stats(
        self,
        *,
        admin_secret: str | None,
        admin_email: str | None,
        page_size: int = DEFAULT_MODERATION_PAGE_SIZE,
        page_number: int = 0,
    ) -> Page[SkipStat]:
        page_size = validate_page_size(page_size, maximum=MAX_SKIP_PAGE_SIZE)
        page_number = _validate_page_number(page_number)
        self.guard.require_admin(admin_secret, admin_email)

        try:
            with self._session_factory() as session:
                stats = fetch_skip_stats(session)
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while reading skip stats") from exc

        offset = page_number * page_size
        return Page(items=stats[offset : offset + page_size], total_count=len(stats))

    def _update(self, action: str, operation: Callable[[Session], T]) -> T:
        try:
            with self._session_factory() as session:
                with session.begin():
                    return operation(session)
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Database error during {action}") from exc


def _validate_page_number(page_number: int) -> int:
    if isinstance(page_number, bool) or not isinstance(page_number, int) or page_number < 0:
        raise ValidationError("page_number must be an integer >= 0")
    return page_number
