"""Database repository helpers."""

from repositories.schema import ensure_schema

__all__ = ["ensure_schema"]
