"""ORM models."""

from models.admin import Admin
from models.base import Base
from models.celebrity import Celebrity
from models.matchup import MatchOutcome, SkipEvent
from models.wikipedia_cache import WikipediaCacheEntry

__all__ = [
    "Admin",
    "Base",
    "Celebrity",
    "MatchOutcome",
    "SkipEvent",
    "WikipediaCacheEntry",
]
