"""Tests for the scheduled leaderboard job."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from marginboard.cache.leaderboard import LAST_RUN_KEY, LeaderboardCache
from marginboard.core.exceptions import ConfigurationError
from marginboard.schemas.leaderboard import Snapshot
from marginboard.services.leaderboard_job import LeaderboardJob


MARGINS = {
    "THYAO": (12.0, 20.0),
    "ASELS": (18.0, 35.0),
    "BIMAS": (4.0, 22.0),
    "AAPL": (25.0, 45.0),
    "MSFT": (35.0, 69.0),
    "NVDA": (55.0, 75.0),
}


class TestLeaderboardJob:
    """Tests for LeaderboardJob.run."""

    @pytest.mark.asyncio
    async def test_saves_every_universe(self, cache, store, universes, fake_fetcher_factory, settings_factory):
        """Each universe is computed, cached and lastRun is stamped."""
        fetcher = fake_fetcher_factory(MARGINS)
        job = LeaderboardJob(cache, universes.values(), settings_factory(), fetcher=fetcher)

        result = await job.run()

        assert result.ok is True
        assert result.saved == ["BIST100", "NASDAQ100"]
        assert result.failed == {}
        assert result.skipped == []
        assert result.at is not None
        assert LAST_RUN_KEY in store.data

        bist = await cache.get_snapshot("BIST100")
        assert [s.symbol for s in bist.top_net] == ["ASELS", "THYAO", "BIMAS"]
        assert all(s.provider_symbol.endswith(".IS") for s in bist.top_net)

    @pytest.mark.asyncio
    async def test_limit_from_settings(self, cache, universes, fake_fetcher_factory, settings_factory):
        """Boards are capped at the configured limit."""
        job = LeaderboardJob(
            cache, universes.values(), settings_factory(leaderboard_limit=2), fetcher=fake_fetcher_factory(MARGINS)
        )
        await job.run()

        nasdaq = await cache.get_snapshot("NASDAQ100")
        assert [s.symbol for s in nasdaq.top_net] == ["NVDA", "MSFT"]

    @pytest.mark.asyncio
    async def test_missing_api_key_aborts(self, cache, store, universes, fake_fetcher_factory, settings_factory):
        """Without a provider key nothing is fetched or written."""
        fetcher = fake_fetcher_factory(MARGINS)
        job = LeaderboardJob(cache, universes.values(), settings_factory(finnhub_api_key=""), fetcher=fetcher)

        with pytest.raises(ConfigurationError):
            await job.run()
        assert fetcher.calls == []
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_one_universe_failing_does_not_stop_others(self, cache, universes, fake_fetcher_factory, settings_factory, mocker):
        """A crashing universe is reported while the others are saved."""
        from marginboard.services import leaderboard_job

        real_compute = leaderboard_job.compute_leaderboard

        async def flaky_compute(universe, *args, **kwargs):
            if universe == "BIST100":
                raise RuntimeError("boom")
            return await real_compute(universe, *args, **kwargs)

        mocker.patch.object(leaderboard_job, "compute_leaderboard", side_effect=flaky_compute)
        job = LeaderboardJob(cache, universes.values(), settings_factory(), fetcher=fake_fetcher_factory(MARGINS))

        result = await job.run()

        assert result.saved == ["NASDAQ100"]
        assert "BIST100" in result.failed
        assert await cache.get_snapshot("BIST100") is None

    @pytest.mark.asyncio
    async def test_stale_write_reported(self, cache, store, universes, fake_fetcher_factory, settings_factory):
        """A cached snapshot newer than the run is left in place."""
        future = datetime.now(timezone.utc) + timedelta(days=1)
        store.data["leaderboard:BIST100"] = Snapshot(universe="BIST100", updated_at=future).model_dump_json()

        job = LeaderboardJob(cache, universes.values(), settings_factory(), fetcher=fake_fetcher_factory(MARGINS))
        result = await job.run()

        assert result.stale == ["BIST100"]
        assert result.saved == ["NASDAQ100"]
        assert json.loads(store.data["leaderboard:BIST100"])["top_net"] == []

    @pytest.mark.asyncio
    async def test_budget_exhaustion_skips_remaining(self, cache, universes, settings_factory):
        """Universes not finished within the budget fail or are skipped."""

        class HangingFetcher:
            async def fetch(self, symbol, credential, provider_suffix=""):
                await asyncio.sleep(10)

        job = LeaderboardJob(
            cache,
            universes.values(),
            settings_factory(leaderboard_job_budget_seconds=0.05),
            fetcher=HangingFetcher(),
        )
        result = await job.run()

        assert result.failed == {"BIST100": "time budget exceeded"}
        assert result.skipped == ["NASDAQ100"]
        assert result.saved == []

    @pytest.mark.asyncio
    async def test_cache_outage_reported_per_universe(self, failing_store, universes, fake_fetcher_factory, settings_factory):
        """Write failures are reported without raising."""
        cache = LeaderboardCache(failing_store)
        job = LeaderboardJob(cache, universes.values(), settings_factory(), fetcher=fake_fetcher_factory(MARGINS))

        result = await job.run()

        assert result.ok is True
        assert result.saved == []
        assert set(result.failed) == {"BIST100", "NASDAQ100"}

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, cache, universes, fake_fetcher_factory, settings_factory):
        """Running twice leaves the same boards with a newer timestamp."""
        settings = settings_factory()
        await LeaderboardJob(cache, universes.values(), settings, fetcher=fake_fetcher_factory(MARGINS)).run()
        first = await cache.get_snapshot("NASDAQ100")
        await LeaderboardJob(cache, universes.values(), settings, fetcher=fake_fetcher_factory(MARGINS)).run()
        second = await cache.get_snapshot("NASDAQ100")

        assert first.model_dump(exclude={"updated_at"}) == second.model_dump(exclude={"updated_at"})
        assert second.updated_at >= first.updated_at
