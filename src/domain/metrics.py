"""Statistical helpers shown next to rankings and profiles."""

from __future__ import annotations

from datetime import datetime
from math import sqrt

from domain.common import utc_now

_SECONDS_PER_DAY = 86_400.0


def wilson_lower_bound(positive: int, total: int, z: float = 1.96) -> float:
    """Lower bound of the Wilson score interval for a binomial proportion, clamped to [0, 1]."""
    if total <= 0:
        return 0.0
    p_hat = positive / total
    z2 = z * z
    denominator = 1.0 + z2 / total
    center = p_hat + z2 / (2.0 * total)
    margin = z * sqrt((p_hat * (1.0 - p_hat) + z2 / (4.0 * total)) / total)
    return max(0.0, min(1.0, (center - margin) / denominator))


def days_since(moment: datetime | None, *, now: datetime | None = None) -> int | None:
    if moment is None:
        return None
    now = now or utc_now()
    elapsed_days = (now - moment).total_seconds() / _SECONDS_PER_DAY
    return max(0, int(elapsed_days // 1))


def matches_per_day(
    matches: int,
    created_at: datetime | None,
    *,
    now: datetime | None = None,
) -> float | None:
    """Average matches per whole day since creation; same-day entities report raw matches."""
    days = days_since(created_at, now=now)
    if days is None:
        return None
    if days <= 0:
        return float(matches)
    return matches / days


def rating_percentile_from_rank(rank: int, total_count: int) -> float | None:
    if total_count <= 0 or rank <= 0:
        return None
    percentile = (1.0 - (rank - 1) / total_count) * 100.0
    return max(0.0, min(100.0, percentile))


def win_rate(wins: int, matches: int) -> float:
    if matches <= 0:
        return 0.0
    return wins / matches * 100.0
