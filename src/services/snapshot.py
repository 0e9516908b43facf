"""Process-local snapshot of every celebrity row."""

from __future__ import annotations

import time
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.cache import SnapshotCache
from domain.common import CelebrityRecord
from domain.errors import UpstreamError
from repositories.celebrity_repository import fetch_all_celebrities


class CelebritySnapshot:
    """All celebrities (approved and pending), reloaded when empty or older than the TTL.

    Rows created after the last refresh stay invisible until the next one and
    ratings may lag the database by up to the TTL.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._cache: SnapshotCache[str, CelebrityRecord] = SnapshotCache(
            ttl_seconds,
            key=lambda record: record.id,
            clock=clock,
        )

    def _load(self) -> list[CelebrityRecord]:
        try:
            with self._session_factory() as session:
                return fetch_all_celebrities(session)
        except SQLAlchemyError as exc:
            raise UpstreamError("Database error while loading celebrities") from exc

    def all(self) -> list[CelebrityRecord]:
        return self._cache.get(self._load)

    def approved(self) -> list[CelebrityRecord]:
        return [record for record in self.all() if record.approved]

    def find_by_id(self, celebrity_id: str) -> CelebrityRecord | None:
        return self._cache.find(lambda record: record.id == celebrity_id)

    def find_by_slug(self, slug: str) -> CelebrityRecord | None:
        return self._cache.find(lambda record: record.slug == slug)

    def upsert(self, record: CelebrityRecord) -> None:
        self._cache.upsert(record)

    def invalidate(self) -> None:
        self._cache.invalidate()
