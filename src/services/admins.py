"""Admin lookup with a TTL cache, and the credential checks for moderation."""

from __future__ import annotations

import hmac
import time
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from domain.cache import TTLCache
from domain.common import AdminRecord
from domain.errors import UnauthorizedError, UpstreamError
from repositories.admin_repository import fetch_admin


class AdminDirectory:
    """E-mail keyed admin lookups; misses are cached too so unknown users cost one query per TTL."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._cache: TTLCache[str, AdminRecord | None] = TTLCache(ttl_seconds, clock=clock)

    def get_admin(self, email: str) -> AdminRecord | None:
        normalized = email.strip().lower()
        cached = self._cache.lookup(normalized)
        if cached is not None:
            return cached.value

        try:
            with self._session_factory() as session:
                admin = fetch_admin(session, normalized)
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Could not look up admin {normalized}") from exc

        self._cache.set(normalized, admin)
        return admin

    def is_approved_admin(self, email: str) -> bool:
        admin = self.get_admin(email)
        return admin is not None and admin.is_active

    def invalidate(self, email: str) -> None:
        self._cache.invalidate(email.strip().lower())

    def clear(self) -> None:
        self._cache.clear()


class AdminGuard:
    """Checks the shared admin secret and, for moderation, the admin directory."""

    def __init__(self, expected_secret: str | None, directory: AdminDirectory) -> None:
        self._expected_secret = expected_secret
        self.directory = directory

    def require_secret(self, secret: str | None) -> None:
        if not self._expected_secret:
            raise UnauthorizedError("Admin actions are disabled: no admin secret configured")
        if not secret or not hmac.compare_digest(secret.encode(), self._expected_secret.encode()):
            raise UnauthorizedError("Invalid admin secret")

    def require_admin(self, secret: str | None, email: str | None) -> AdminRecord:
        self.require_secret(secret)
        if not email:
            raise UnauthorizedError("Unauthorized: you must identify as an admin")
        admin = self.directory.get_admin(email)
        if admin is None or not admin.is_active:
            raise UnauthorizedError("Forbidden: you are not authorized to perform this action")
        return admin
