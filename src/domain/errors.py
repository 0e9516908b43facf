"""Error taxonomy shared by the rating, matchmaking and catalogue services."""

from __future__ import annotations

from math import ceil


class VapeRankError(Exception):
    """Base class for every error raised deliberately by this project."""


class ValidationError(VapeRankError, ValueError):
    """Malformed input, rejected before any side effect."""


class NotFoundError(VapeRankError, LookupError):
    """A referenced celebrity (or other record) does not exist."""


class RateLimitedError(VapeRankError):
    """The caller exceeded its quota for one rate-limit key."""

    def __init__(self, retry_after_ms: int, message: str | None = None) -> None:
        self.retry_after_ms = max(0, int(retry_after_ms))
        super().__init__(
            message or f"Rate limit exceeded. Try again in {self.retry_after_seconds}s."
        )

    @property
    def retry_after_seconds(self) -> int:
        return max(1, ceil(self.retry_after_ms / 1000))


class ConflictError(VapeRankError):
    """A conditional update failed because the record changed underneath us."""


class UnauthorizedError(VapeRankError):
    """An administrative action was attempted without a valid credential."""


class UpstreamError(VapeRankError):
    """An external API or store failed in a way not otherwise classified."""


class InsufficientDataError(VapeRankError):
    """Not enough celebrities exist to satisfy the request."""


__all__ = [
    "ConflictError",
    "InsufficientDataError",
    "NotFoundError",
    "RateLimitedError",
    "UnauthorizedError",
    "UpstreamError",
    "ValidationError",
    "VapeRankError",
]
