"""
Leaderboard engine.

Fans the metric fetcher out over a universe under a bounded semaphore, waits
for every fetch to settle, then ranks the surviving samples three ways.
Failed symbols are dropped; a total outage produces an empty snapshot.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Protocol, Sequence

from marginboard.core.logging import get_logger
from marginboard.domain.universe import dedupe_symbols
from marginboard.schemas.leaderboard import MetricSample, Period, Snapshot

logger = get_logger("leaderboard")

DEFAULT_CONCURRENCY = 6


class MetricFetcher(Protocol):
    """Anything that can turn one symbol into a MetricSample (or None)."""

    async def fetch(
        self, symbol: str, credential: str, provider_suffix: str = ""
    ) -> Optional[MetricSample]:
        ...


def _top(
    samples: Sequence[MetricSample],
    metric: Callable[[MetricSample], Optional[float]],
    limit: int,
) -> list[MetricSample]:
    """Samples with a value for ``metric``, best first, symbol order on ties."""
    ranked = [s for s in samples if metric(s) is not None]
    ranked.sort(key=lambda s: (-metric(s), s.symbol))
    return ranked[:limit]


def rank_samples(
    samples: Sequence[MetricSample], limit: int
) -> tuple[list[MetricSample], list[MetricSample], list[MetricSample]]:
    """(top_net, top_gross, top_quality), each capped at ``limit``."""
    return (
        _top(samples, lambda s: s.net_margin, limit),
        _top(samples, lambda s: s.gross_margin, limit),
        _top(samples, lambda s: s.quality_score, limit),
    )


def period_hint(samples: Iterable[MetricSample]) -> Period:
    """Most common reporting period; UNKNOWN when empty or tied."""
    counts = Counter(s.period for s in samples).most_common()
    if not counts:
        return "UNKNOWN"
    if len(counts) > 1 and counts[0][1] == counts[1][1]:
        return "UNKNOWN"
    return counts[0][0]


async def compute_leaderboard(
    universe: str,
    symbols: Iterable[str],
    limit: int,
    credential: str,
    *,
    fetcher: MetricFetcher,
    provider_suffix: str = "",
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Snapshot:
    """
    Compute the three margin leaderboards for ``universe``.

    Args:
        universe: Universe name stored on the snapshot
        symbols: Non-empty symbol set (deduplicated here, order kept)
        limit: Maximum entries per board (positive)
        credential: Provider API token
        fetcher: Metric fetcher used once per symbol
        provider_suffix: Exchange suffix the provider expects (e.g. ".IS")
        concurrency: Maximum fetches in flight

    Returns:
        Snapshot stamped with the completion time. Never raises for fetch
        failures; only argument errors raise ValueError.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    wanted = dedupe_symbols(symbols)
    if not wanted:
        raise ValueError("symbols must not be empty")

    sem = asyncio.Semaphore(max(1, concurrency))

    async def fetch_one(symbol: str) -> Optional[MetricSample]:
        async with sem:
            return await fetcher.fetch(symbol, credential, provider_suffix)

    results = await asyncio.gather(
        *(fetch_one(symbol) for symbol in wanted), return_exceptions=True
    )

    members = set(wanted)
    samples: list[MetricSample] = []
    failed: list[str] = []
    for symbol, result in zip(wanted, results):
        if isinstance(result, MetricSample) and result.symbol in members:
            samples.append(result)
            continue
        failed.append(symbol)
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                # CancelledError and friends must not be swallowed
                raise result
            logger.warning(
                f"Fetcher raised for {symbol}: {type(result).__name__}: {result}",
                extra={"universe": universe, "symbol": symbol},
            )

    top_net, top_gross, top_quality = rank_samples(samples, limit)

    logger.info(
        f"Computed {universe} leaderboard: {len(samples)}/{len(wanted)} symbols",
        extra={
            "universe": universe,
            "succeeded": len(samples),
            "failed": len(failed),
        },
    )
    if not samples:
        logger.warning(f"No symbol produced metrics for {universe}", extra={"universe": universe})

    return Snapshot(
        universe=universe,
        updated_at=datetime.now(timezone.utc),
        period_hint=period_hint(samples),
        top_net=top_net,
        top_gross=top_gross,
        top_quality=top_quality,
    )
