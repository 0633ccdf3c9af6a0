"""Tests for the leaderboard engine."""

from __future__ import annotations

import asyncio
from datetime import timezone

import pytest

from marginboard.schemas.leaderboard import MetricSample
from marginboard.services.leaderboard import compute_leaderboard, period_hint


def _symbols(board) -> list[str]:
    return [s.symbol for s in board]


class TestComputeLeaderboard:
    """Tests for compute_leaderboard."""

    @pytest.mark.asyncio
    async def test_demo_scenario(self, fake_fetcher_factory):
        """Two good symbols and one failure rank as expected."""
        fetcher = fake_fetcher_factory(
            {"A": (20.0, 30.0), "B": (10.0, 50.0), "C": RuntimeError("provider down")}
        )
        snapshot = await compute_leaderboard("DEMO", ["A", "B", "C"], 2, "k", fetcher=fetcher)

        assert _symbols(snapshot.top_net) == ["A", "B"]
        assert _symbols(snapshot.top_gross) == ["B", "A"]
        assert len(snapshot.top_quality) == 2
        assert snapshot.universe == "DEMO"
        assert snapshot.updated_at.tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_boards_capped_at_limit(self, fake_fetcher_factory):
        """No board exceeds the limit."""
        margins = {f"S{i:02d}": (float(i), float(100 - i)) for i in range(20)}
        fetcher = fake_fetcher_factory(margins)
        snapshot = await compute_leaderboard("U", list(margins), 5, "k", fetcher=fetcher)

        for board in (snapshot.top_net, snapshot.top_gross, snapshot.top_quality):
            assert len(board) == 5
        assert _symbols(snapshot.top_net) == ["S19", "S18", "S17", "S16", "S15"]

    @pytest.mark.asyncio
    async def test_ties_broken_by_symbol(self, fake_fetcher_factory):
        """Equal values rank by ascending symbol."""
        fetcher = fake_fetcher_factory({"MSFT": (10.0, 10.0), "AAPL": (10.0, 10.0), "NVDA": (10.0, 10.0)})
        snapshot = await compute_leaderboard("U", ["MSFT", "NVDA", "AAPL"], 3, "k", fetcher=fetcher)

        assert _symbols(snapshot.top_net) == ["AAPL", "MSFT", "NVDA"]
        assert _symbols(snapshot.top_quality) == ["AAPL", "MSFT", "NVDA"]

    @pytest.mark.asyncio
    async def test_missing_margin_excluded_from_its_board(self, fake_fetcher_factory):
        """A sample without net margin is absent from top_net only."""
        fetcher = fake_fetcher_factory({"A": (None, 60.0), "B": (5.0, 20.0)})
        snapshot = await compute_leaderboard("U", ["A", "B"], 5, "k", fetcher=fetcher)

        assert _symbols(snapshot.top_net) == ["B"]
        assert _symbols(snapshot.top_gross) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_total_outage_gives_empty_snapshot(self, fake_fetcher_factory):
        """All fetches failing yields empty boards, not an error."""
        fetcher = fake_fetcher_factory({"A": None, "B": ValueError("bad")})
        snapshot = await compute_leaderboard("U", ["A", "B"], 3, "k", fetcher=fetcher)

        assert snapshot.is_empty
        assert snapshot.period_hint == "UNKNOWN"
        assert snapshot.updated_at is not None

    @pytest.mark.asyncio
    async def test_symbols_deduplicated(self, fake_fetcher_factory):
        """Each symbol is fetched once and appears once."""
        fetcher = fake_fetcher_factory({"AAPL": (25.0, 45.0)})
        snapshot = await compute_leaderboard("U", ["AAPL", "aapl", "NASDAQ:AAPL"], 3, "k", fetcher=fetcher)

        assert len(fetcher.calls) == 1
        assert _symbols(snapshot.top_net) == ["AAPL"]

    @pytest.mark.asyncio
    async def test_foreign_samples_dropped(self):
        """Samples for symbols outside the universe are discarded."""

        class WrongSymbolFetcher:
            async def fetch(self, symbol, credential, provider_suffix=""):
                return MetricSample(
                    symbol="OTHER", provider_symbol="OTHER", net_margin=99.0,
                    gross_margin=99.0, quality_score=99.0,
                )

        snapshot = await compute_leaderboard("U", ["A"], 3, "k", fetcher=WrongSymbolFetcher())
        assert snapshot.is_empty

    @pytest.mark.asyncio
    async def test_credential_and_suffix_forwarded(self, fake_fetcher_factory):
        """The fetcher receives the credential and provider suffix."""
        fetcher = fake_fetcher_factory({"THYAO": (8.0, 20.0)})
        await compute_leaderboard("BIST100", ["THYAO"], 3, "secret", fetcher=fetcher, provider_suffix=".IS")

        assert fetcher.calls == [("THYAO", "secret", ".IS")]

    @pytest.mark.asyncio
    async def test_idempotent_apart_from_timestamp(self, fake_fetcher_factory):
        """Same inputs produce the same boards."""
        margins = {"A": (20.0, 30.0), "B": (10.0, 50.0), "C": (15.0, 15.0)}
        first = await compute_leaderboard("U", list(margins), 2, "k", fetcher=fake_fetcher_factory(margins))
        second = await compute_leaderboard("U", list(margins), 2, "k", fetcher=fake_fetcher_factory(margins))

        assert first.model_dump(exclude={"updated_at"}) == second.model_dump(exclude={"updated_at"})

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        """No more than ``concurrency`` fetches run at once."""
        in_flight = 0
        peak = 0

        class SlowFetcher:
            async def fetch(self, symbol, credential, provider_suffix=""):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return None

        await compute_leaderboard("U", [f"S{i}" for i in range(12)], 3, "k", fetcher=SlowFetcher(), concurrency=3)
        assert peak == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, 2.5, True])
    async def test_invalid_limit(self, limit, fake_fetcher_factory):
        """Non-positive or non-integer limits are rejected."""
        with pytest.raises(ValueError):
            await compute_leaderboard("U", ["A"], limit, "k", fetcher=fake_fetcher_factory({}))

    @pytest.mark.asyncio
    async def test_empty_symbols(self, fake_fetcher_factory):
        """An empty universe is rejected."""
        with pytest.raises(ValueError):
            await compute_leaderboard("U", [], 3, "k", fetcher=fake_fetcher_factory({}))


class TestPeriodHint:
    """Tests for period_hint."""

    def _sample(self, symbol: str, period: str) -> MetricSample:
        return MetricSample(symbol=symbol, provider_symbol=symbol, net_margin=1.0, quality_score=0.6, period=period)

    def test_majority_wins(self):
        """The most common period is reported."""
        samples = [self._sample("A", "TTM"), self._sample("B", "TTM"), self._sample("C", "FY")]
        assert period_hint(samples) == "TTM"

    def test_tie_is_unknown(self):
        """A tie between periods is UNKNOWN."""
        assert period_hint([self._sample("A", "TTM"), self._sample("B", "FY")]) == "UNKNOWN"

    def test_empty_is_unknown(self):
        """No samples means UNKNOWN."""
        assert period_hint([]) == "UNKNOWN"
