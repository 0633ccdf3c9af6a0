"""
Scheduled leaderboard computation.

Runs the engine for every configured universe in turn and writes each
snapshot to the cache, then stamps ``leaderboard:lastRun``. A failure in one
universe is logged and reported but never stops the others. The whole run is
bounded by a wall-clock budget: universes not started in time are skipped and
picked up by the next run, while snapshots already written stay valid.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Iterable, Optional

import httpx

from marginboard.cache.leaderboard import LeaderboardCache
from marginboard.core.config import Settings
from marginboard.core.exceptions import CacheError, ConfigurationError
from marginboard.core.logging import get_logger
from marginboard.domain.universe import Universe
from marginboard.schemas.leaderboard import JobRunResponse

from .financials.finnhub import FinnhubMetricFetcher
from .leaderboard import MetricFetcher, compute_leaderboard

logger = get_logger("leaderboard.job")


class LeaderboardJob:
    """One run of the leaderboard computation over all universes."""

    def __init__(
        self,
        cache: LeaderboardCache,
        universes: Iterable[Universe],
        settings: Settings,
        fetcher: Optional[MetricFetcher] = None,
    ):
        self.cache = cache
        self.universes = list(universes)
        self.settings = settings
        self.fetcher = fetcher

    async def run(self) -> JobRunResponse:
        """
        Compute and cache every universe.

        Raises:
            ConfigurationError: provider API key missing; nothing is attempted
        """
        credential = self.settings.finnhub_api_key
        if not credential:
            raise ConfigurationError("Missing FINNHUB_API_KEY")

        if self.fetcher is not None:
            return await self._run(self.fetcher, credential)

        async with httpx.AsyncClient(timeout=self.settings.finnhub_timeout) as client:
            fetcher = FinnhubMetricFetcher.from_settings(self.settings, client=client)
            return await self._run(fetcher, credential)

    async def _run(self, fetcher: MetricFetcher, credential: str) -> JobRunResponse:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.leaderboard_job_budget_seconds
        result = JobRunResponse()

        for universe in self.universes:
            remaining = deadline - loop.time()
            if remaining <= 0:
                result.skipped.append(universe.name)
                logger.warning(
                    f"Time budget exhausted, skipping {universe.name}",
                    extra={"universe": universe.name, "outcome": "skipped"},
                )
                continue

            outcome = await self._process(universe, fetcher, credential, remaining)
            if outcome is None:
                result.saved.append(universe.name)
            elif outcome == "stale":
                result.stale.append(universe.name)
            else:
                result.failed[universe.name] = outcome

        finished_at = datetime.now(timezone.utc)
        try:
            await self.cache.set_last_run(finished_at)
        except CacheError as e:
            logger.error(f"Failed to record last run: {e}")

        result.at = finished_at
        logger.info(
            "Leaderboard job finished",
            extra={
                "saved": result.saved,
                "stale": result.stale,
                "failed": list(result.failed),
                "skipped": result.skipped,
            },
        )
        return result

    async def _process(
        self,
        universe: Universe,
        fetcher: MetricFetcher,
        credential: str,
        timeout: float,
    ) -> Optional[str]:
        """Compute and store one universe. Returns None, "stale" or a failure reason."""
        try:
            snapshot = await asyncio.wait_for(
                compute_leaderboard(
                    universe.name,
                    universe.symbols,
                    self.settings.leaderboard_limit,
                    credential,
                    fetcher=fetcher,
                    provider_suffix=universe.provider_suffix,
                    concurrency=self.settings.leaderboard_concurrency,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"{universe.name} computation exceeded the time budget",
                extra={"universe": universe.name, "outcome": "failed"},
            )
            return "time budget exceeded"
        except Exception as e:
            logger.exception(
                f"{universe.name} computation failed",
                extra={"universe": universe.name, "outcome": "failed"},
            )
            return f"compute failed: {type(e).__name__}"

        try:
            written = await self.cache.put_snapshot(snapshot)
        except CacheError as e:
            logger.error(
                f"Failed to cache {universe.name} snapshot: {e}",
                extra={"universe": universe.name, "outcome": "failed"},
            )
            return "cache write failed"

        if not written:
            return "stale"
        logger.info(
            f"Cached {universe.name} snapshot",
            extra={
                "universe": universe.name,
                "outcome": "saved",
                "entries": len(snapshot.top_net),
            },
        )
        return None
