"""Persistence helpers for the admins table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.common import AdminRecord
from models.admin import Admin


def _to_record(row: Admin) -> AdminRecord:
    return AdminRecord(email=row.email, role=row.role, is_active=row.is_active)


def fetch_admin(session: Session, email: str) -> AdminRecord | None:
    row = session.get(Admin, email.strip().lower(), populate_existing=True)
    return None if row is None else _to_record(row)


def list_admins(session: Session) -> list[AdminRecord]:
    return [_to_record(row) for row in session.execute(select(Admin).order_by(Admin.email)).scalars()]


def upsert_admin(
    session: Session,
    *,
    email: str,
    role: str | None,
    is_active: bool,
    now: datetime,
) -> AdminRecord:
    """Create or update an admin keyed by lower-cased e-mail."""
    normalized = email.strip().lower()
    admin = session.get(Admin, normalized)
    if admin is None:
        admin = Admin(
            email=normalized,
            role=role,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        session.add(admin)
    else:
        admin.role = role if role is not None else admin.role
        admin.is_active = is_active
        admin.updated_at = now
    session.flush()
    return _to_record(admin)
