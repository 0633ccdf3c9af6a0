"""API dependencies: settings, cache access, configured services, cron auth.

Every service a route needs comes through here so tests can swap it out via
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query

from marginboard.cache.leaderboard import LeaderboardCache
from marginboard.cache.store import KeyValueStore, ValkeyStore
from marginboard.core.config import Settings, get_settings
from marginboard.core.security import verify_shared_secret
from marginboard.domain.universe import Universe, build_universes
from marginboard.services.completion import CredentialRotatingClient
from marginboard.services.leaderboard import MetricFetcher
from marginboard.services.leaderboard_reader import LeaderboardReader


__all__ = [
    "get_app_settings",
    "get_completion_client",
    "get_key_value_store",
    "get_leaderboard_cache",
    "get_leaderboard_reader",
    "get_metric_fetcher",
    "get_universes",
    "require_cron_token",
]


def get_app_settings() -> Settings:
    return get_settings()


def get_key_value_store() -> KeyValueStore:
    return ValkeyStore()


def get_leaderboard_cache(
    store: KeyValueStore = Depends(get_key_value_store),
    settings: Settings = Depends(get_app_settings),
) -> LeaderboardCache:
    return LeaderboardCache(store, ttl=settings.leaderboard_cache_ttl)


def get_universes(settings: Settings = Depends(get_app_settings)) -> dict[str, Universe]:
    return build_universes(settings)


def get_metric_fetcher() -> Optional[MetricFetcher]:
    """None lets the job open its own pooled Finnhub fetcher per run."""
    return None


def get_leaderboard_reader(
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
    universes: dict[str, Universe] = Depends(get_universes),
    settings: Settings = Depends(get_app_settings),
) -> LeaderboardReader:
    return LeaderboardReader(cache, universes, settings.default_universe)


def get_completion_client(
    settings: Settings = Depends(get_app_settings),
) -> CredentialRotatingClient:
    return CredentialRotatingClient.from_settings(settings)


def require_cron_token(
    token: Optional[str] = Query(default=None, description="Shared cron secret"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Reject the request with 401 unless ``token`` matches CRON_SECRET."""
    verify_shared_secret(token, settings.cron_secret)
