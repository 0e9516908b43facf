"""Pure rating, matchmaking and catalogue logic."""

from domain.common import CelebrityRecord, MatchOutcomeRecord, Winner
from domain.errors import VapeRankError

__all__ = ["CelebrityRecord", "MatchOutcomeRecord", "VapeRankError", "Winner"]
