"""Load application settings from a TOML file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import tomllib

from domain.ratings.elo.calculator import MAX_K_FACTOR, MIN_K_FACTOR, EloParameters
from domain.rate_limit import RateLimitRule

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "app.toml"

DEFAULT_RATE_LIMITS: dict[str, RateLimitRule] = {
    "vote": RateLimitRule(window_ms=60_000, max_calls=30),
    "skip": RateLimitRule(window_ms=60_000, max_calls=30),
    "vaper_vote": RateLimitRule(window_ms=60_000, max_calls=20),
    "suggest": RateLimitRule(window_ms=300_000, max_calls=5),
    "wiki_search": RateLimitRule(window_ms=60_000, max_calls=30),
    "wikipedia_global": RateLimitRule(window_ms=60_000, max_calls=100),
    "wikipedia_page": RateLimitRule(window_ms=60_000, max_calls=10),
}


@dataclass(frozen=True)
class CacheConfig:
    entity_snapshot_ttl_seconds: float = 300.0
    admin_ttl_seconds: float = 300.0
    wikipedia_memory_ttl_seconds: float = 6 * 60 * 60.0
    wikipedia_persistent_ttl_days: int = 180


@dataclass(frozen=True)
class WikipediaConfig:
    api_url: str = "https://en.wikipedia.org/w/api.php"
    user_agent: str = "vaperank/1.0 (contact: admin@example.org)"
    timeout_seconds: float = 10.0
    max_retries: int = 3
    initial_retry_delay_seconds: float = 1.0
    batch_size: int = 50
    thumbnail_size: int = 500


@dataclass(frozen=True)
class AdminConfig:
    secret_env: str = "VAPERANK_ADMIN_SECRET"

    def read_secret(self) -> str | None:
        value = os.environ.get(self.secret_env, "").strip()
        return value or None


@dataclass(frozen=True)
class AppConfig:
    """Every tunable of the service, with defaults for anything omitted."""

    file_path: Path | None = None
    rating: EloParameters = field(default_factory=EloParameters)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limits: dict[str, RateLimitRule] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    wikipedia: WikipediaConfig = field(default_factory=WikipediaConfig)
    admin: AdminConfig = field(default_factory=AdminConfig)

    def rate_limit(self, name: str) -> RateLimitRule:
        try:
            return self.rate_limits[name]
        except KeyError as exc:
            raise KeyError(f"Unknown rate limit rule: {name}") from exc

    def as_config_json(self) -> dict[str, Any]:
        return {
            "rating": {
                "initial_rating": self.rating.initial_rating,
                "default_k_factor": self.rating.k_factor,
                "scale_factor": self.rating.scale_factor,
            },
            "cache": {
                "entity_snapshot_ttl_seconds": self.cache.entity_snapshot_ttl_seconds,
                "admin_ttl_seconds": self.cache.admin_ttl_seconds,
                "wikipedia_memory_ttl_seconds": self.cache.wikipedia_memory_ttl_seconds,
                "wikipedia_persistent_ttl_days": self.cache.wikipedia_persistent_ttl_days,
            },
            "rate_limits": {
                name: {"window_ms": rule.window_ms, "max_calls": rule.max_calls}
                for name, rule in sorted(self.rate_limits.items())
            },
            "wikipedia": {
                "api_url": self.wikipedia.api_url,
                "timeout_seconds": self.wikipedia.timeout_seconds,
                "max_retries": self.wikipedia.max_retries,
                "batch_size": self.wikipedia.batch_size,
            },
        }


def load_app_config(file_path: Path | None = None) -> AppConfig:
    """Load and validate the TOML settings file (defaults when ``file_path`` is None)."""
    if file_path is None:
        return AppConfig()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    if not file_path.is_file():
        raise ValueError(f"Config path is not a file: {file_path}")

    with file_path.open("rb") as file:
        raw = tomllib.load(file)
    return _parse_app_config(raw, file_path)


def _parse_int(value: Any, *, file_path: Path, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{file_path}: {key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{file_path}: {key} must be an integer")


def _parse_float(value: Any, *, file_path: Path, key: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{file_path}: {key} must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ValueError(f"{file_path}: {key} must be a number")


def _parse_app_config(raw: dict[str, Any], file_path: Path) -> AppConfig:
    rating_raw = raw.get("rating", {})
    cache_raw = raw.get("cache", {})
    limits_raw = raw.get("rate_limits", {})
    wikipedia_raw = raw.get("wikipedia", {})
    admin_raw = raw.get("admin", {})

    def as_int(table: str, section: dict[str, Any], name: str, default: int) -> int:
        return _parse_int(section.get(name, default), file_path=file_path, key=f"[{table}].{name}")

    def as_float(table: str, section: dict[str, Any], name: str, default: float) -> float:
        return _parse_float(section.get(name, default), file_path=file_path, key=f"[{table}].{name}")

    rating = EloParameters(
        initial_rating=as_int("rating", rating_raw, "initial_rating", 1000),
        k_factor=as_int("rating", rating_raw, "default_k_factor", 32),
        scale_factor=as_float("rating", rating_raw, "scale_factor", 400.0),
    )
    cache = CacheConfig(
        entity_snapshot_ttl_seconds=as_float("cache", cache_raw, "entity_snapshot_ttl_seconds", 300.0),
        admin_ttl_seconds=as_float("cache", cache_raw, "admin_ttl_seconds", 300.0),
        wikipedia_memory_ttl_seconds=as_float(
            "cache", cache_raw, "wikipedia_memory_ttl_seconds", 6 * 60 * 60.0
        ),
        wikipedia_persistent_ttl_days=as_int("cache", cache_raw, "wikipedia_persistent_ttl_days", 180),
    )

    rate_limits = dict(DEFAULT_RATE_LIMITS)
    for name, rule_raw in limits_raw.items():
        default_rule = rate_limits.get(name, RateLimitRule())
        table = f"rate_limits.{name}"
        rate_limits[name] = RateLimitRule(
            window_ms=as_int(table, rule_raw, "window_ms", default_rule.window_ms),
            max_calls=as_int(table, rule_raw, "max_calls", default_rule.max_calls),
        )

    wikipedia = WikipediaConfig(
        api_url=str(wikipedia_raw.get("api_url", WikipediaConfig.api_url)),
        user_agent=str(wikipedia_raw.get("user_agent", WikipediaConfig.user_agent)),
        timeout_seconds=as_float("wikipedia", wikipedia_raw, "timeout_seconds", 10.0),
        max_retries=as_int("wikipedia", wikipedia_raw, "max_retries", 3),
        initial_retry_delay_seconds=as_float(
            "wikipedia", wikipedia_raw, "initial_retry_delay_seconds", 1.0
        ),
        batch_size=as_int("wikipedia", wikipedia_raw, "batch_size", 50),
        thumbnail_size=as_int("wikipedia", wikipedia_raw, "thumbnail_size", 500),
    )

    secret_env = str(admin_raw.get("secret_env", AdminConfig.secret_env)).strip()
    if not secret_env:
        raise ValueError(f"{file_path}: [admin].secret_env must not be empty")

    config = AppConfig(
        file_path=file_path,
        rating=rating,
        cache=cache,
        rate_limits=rate_limits,
        wikipedia=wikipedia,
        admin=AdminConfig(secret_env=secret_env),
    )
    _validate_config(file_path=file_path, config=config)
    return config


def _validate_config(*, file_path: Path, config: AppConfig) -> None:
    if config.rating.initial_rating < 0:
        raise ValueError(f"{file_path}: [rating].initial_rating must be >= 0")
    if config.rating.k_factor < MIN_K_FACTOR or config.rating.k_factor > MAX_K_FACTOR:
        raise ValueError(
            f"{file_path}: [rating].default_k_factor must be between "
            f"{MIN_K_FACTOR} and {MAX_K_FACTOR}"
        )
    if config.rating.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [rating].scale_factor must be > 0")
    if config.cache.entity_snapshot_ttl_seconds <= 0.0:
        raise ValueError(f"{file_path}: [cache].entity_snapshot_ttl_seconds must be > 0")
    if config.cache.admin_ttl_seconds <= 0.0:
        raise ValueError(f"{file_path}: [cache].admin_ttl_seconds must be > 0")
    if config.cache.wikipedia_memory_ttl_seconds <= 0.0:
        raise ValueError(f"{file_path}: [cache].wikipedia_memory_ttl_seconds must be > 0")
    if config.cache.wikipedia_persistent_ttl_days <= 0:
        raise ValueError(f"{file_path}: [cache].wikipedia_persistent_ttl_days must be > 0")
    for name, rule in config.rate_limits.items():
        if rule.window_ms <= 0:
            raise ValueError(f"{file_path}: [rate_limits.{name}].window_ms must be > 0")
        if rule.max_calls <= 0:
            raise ValueError(f"{file_path}: [rate_limits.{name}].max_calls must be > 0")
    if config.wikipedia.timeout_seconds <= 0.0:
        raise ValueError(f"{file_path}: [wikipedia].timeout_seconds must be > 0")
    if config.wikipedia.max_retries < 0:
        raise ValueError(f"{file_path}: [wikipedia].max_retries must be >= 0")
    if config.wikipedia.initial_retry_delay_seconds < 0.0:
        raise ValueError(f"{file_path}: [wikipedia].initial_retry_delay_seconds must be >= 0")
    if config.wikipedia.batch_size < 1 or config.wikipedia.batch_size > 50:
        raise ValueError(f"{file_path}: [wikipedia].batch_size must be between 1 and 50")


__all__ = [
    "AdminConfig",
    "AppConfig",
    "CacheConfig",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_RATE_LIMITS",
    "WikipediaConfig",
    "load_app_config",
]
