"""Random pairing of approved celebrities for the voting screen."""

from __future__ import annotations

import random

from domain.common import CelebrityRecord
from domain.errors import InsufficientDataError
from services.snapshot import CelebritySnapshot


class PairSelector:
    def __init__(self, snapshot: CelebritySnapshot, *, rng: random.Random | None = None) -> None:
        self._snapshot = snapshot
        self._rng = rng or random.Random()

    def random_pair(self) -> tuple[CelebrityRecord, CelebrityRecord]:
        """Two distinct approved celebrities, uniformly over unordered pairs."""
        candidates = self._snapshot.approved()
        if len(candidates) < 2:
            raise InsufficientDataError(
                f"Not enough celebrities to form a pair (found {len(candidates)})"
            )

        first = self._rng.randrange(len(candidates))
        second = self._rng.randrange(len(candidates))
        while second == first:
            second = self._rng.randrange(len(candidates))
        return candidates[first], candidates[second]
