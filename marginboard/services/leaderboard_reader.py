"""Public read side of the leaderboard cache.

The reader never fails: an absent snapshot or a cache outage both come back
as an empty leaderboard with a ``note`` explaining why.
"""

from __future__ import annotations

from typing import Mapping, Optional

from marginboard.cache.leaderboard import LeaderboardCache
from marginboard.core.exceptions import CacheError
from marginboard.core.logging import get_logger
from marginboard.domain.universe import Universe, resolve_universe
from marginboard.schemas.leaderboard import SnapshotResponse

logger = get_logger("leaderboard.reader")

NOTE_NOT_COMPUTED = "Leaderboard has not been computed yet"
NOTE_UNAVAILABLE = "Leaderboard data is temporarily unavailable"


class LeaderboardReader:
    def __init__(
        self,
        cache: LeaderboardCache,
        universes: Mapping[str, Universe],
        default_universe: str,
    ):
        self.cache = cache
        self.universes = universes
        self.default_universe = default_universe

    async def get_snapshot(
        self, universe: Optional[str] = None, limit: Optional[int] = None
    ) -> SnapshotResponse:
        """
        Latest snapshot for ``universe`` (unknown names use the default).

        ``limit`` further truncates every board when given.
        """
        resolved = resolve_universe(universe, self.universes, self.default_universe)
        name = resolved.name

        try:
            snapshot = await self.cache.get_snapshot(name)
            last_run = await self.cache.get_last_run()
        except CacheError as e:
            logger.warning(f"Serving empty {name} leaderboard: {e}", extra={"universe": name})
            return SnapshotResponse(universe=name, note=NOTE_UNAVAILABLE)
        except Exception:
            logger.exception(
                f"Unexpected error reading {name} leaderboard", extra={"universe": name}
            )
            return SnapshotResponse(universe=name, note=NOTE_UNAVAILABLE)

        if snapshot is None:
            return SnapshotResponse(universe=name, updated_at=last_run, note=NOTE_NOT_COMPUTED)

        if limit is not None:
            snapshot = snapshot.truncated(limit)
        data = snapshot.model_dump()
        data["universe"] = name
        if data.get("updated_at") is None:
            data["updated_at"] = last_run
        return SnapshotResponse.model_validate(data)
