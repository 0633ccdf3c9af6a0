"""Valkey (Redis-compatible) cache module."""

from .client import (
    close_valkey_client,
    get_valkey_client,
    init_valkey_pool,
    valkey_healthcheck,
)
from .leaderboard import (
    LAST_RUN_KEY,
    LeaderboardCache,
    snapshot_key,
)
from .store import (
    KeyValueStore,
    ValkeyStore,
)


__all__ = [
    # Client
    "get_valkey_client",
    "init_valkey_pool",
    "close_valkey_client",
    "valkey_healthcheck",
    # Store
    "KeyValueStore",
    "ValkeyStore",
    # Leaderboards
    "LAST_RUN_KEY",
    "LeaderboardCache",
    "snapshot_key",
]
