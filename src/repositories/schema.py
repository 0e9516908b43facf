"""Schema creation for every table the service owns."""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from models import Base

OWNED_TABLES = ("celebrities", "match_outcomes", "skip_events", "admins", "wikipedia_cache")


def ensure_schema(engine: Engine) -> list[str]:
    """Create missing tables and indexes; return the names of tables that were created."""
    with engine.begin() as connection:
        existing_tables = set(inspect(connection).get_table_names())
        Base.metadata.create_all(bind=connection, checkfirst=True)
    return [table for table in OWNED_TABLES if table not in existing_tables]
