"""Leaderboard snapshot storage.

Keys:
    leaderboard:<UNIVERSE>  JSON-encoded Snapshot
    leaderboard:lastRun     ISO-8601 timestamp of the last completed job run

The per-universe snapshots and the lastRun marker are written independently;
the job writes both. Absent keys are a normal state and come back as None.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from marginboard.core.logging import get_logger
from marginboard.schemas.leaderboard import Snapshot

from .store import KeyValueStore

logger = get_logger("cache.leaderboard")

KEY_PREFIX = "leaderboard"
LAST_RUN_KEY = f"{KEY_PREFIX}:lastRun"


def snapshot_key(universe: str) -> str:
    """
    Cache key for a universe snapshot.

    Usage:
        snapshot_key("nasdaq100") -> "leaderboard:NASDAQ100"
    """
    return f"{KEY_PREFIX}:{universe.strip().upper().replace(':', '_')}"


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class LeaderboardCache:
    """Reads and writes leaderboard snapshots through a KeyValueStore."""

    def __init__(self, store: KeyValueStore, ttl: Optional[int] = None):
        self.store = store
        self.ttl = ttl

    async def get_snapshot(self, universe: str) -> Optional[Snapshot]:
        """Latest snapshot for ``universe``; None if never written or unreadable."""
        raw = await self.store.get(snapshot_key(universe))
        if raw is None:
            return None
        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                f"Discarding undecodable snapshot for {universe}: {e.error_count()} errors",
                extra={"universe": universe},
            )
            return None

    async def put_snapshot(self, snapshot: Snapshot) -> bool:
        """
        Write ``snapshot`` unless the cache already holds a newer one.

        Returns False when the write was skipped to keep ``updated_at``
        non-decreasing for the key. Raises CacheError on backend failure.
        """
        key = snapshot_key(snapshot.universe)
        current = await self.get_snapshot(snapshot.universe)
        if (
            current is not None
            and current.updated_at is not None
            and snapshot.updated_at is not None
            and _as_utc(current.updated_at) > _as_utc(snapshot.updated_at)
        ):
            logger.info(
                f"Skipping stale snapshot for {snapshot.universe}",
                extra={
                    "universe": snapshot.universe,
                    "cached_at": current.updated_at.isoformat(),
                    "incoming_at": snapshot.updated_at.isoformat(),
                },
            )
            return False

        await self.store.set(key, snapshot.model_dump_json(), ttl=self.ttl)
        return True

    async def get_last_run(self) -> Optional[datetime]:
        """Timestamp of the last completed job run, if any."""
        raw = await self.store.get(LAST_RUN_KEY)
        if not raw:
            return None
        try:
            return _as_utc(datetime.fromisoformat(raw))
        except ValueError:
            logger.warning(f"Ignoring malformed lastRun value: {raw!r}")
            return None

    async def set_last_run(self, at: datetime) -> None:
        await self.store.set(LAST_RUN_KEY, _as_utc(at).isoformat())
