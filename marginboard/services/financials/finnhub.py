"""
Finnhub metric fetcher.

One ``fetch`` call turns a ticker into a MetricSample:
1. ``/stock/metric`` for TTM (or annual) net and gross margins
2. ``/stock/financials-reported`` (quarterly, best-effort) for margin stability

Any failure yields None so that one bad symbol never breaks a batch.
Retries are the caller's business; the only exception is a single wait on
HTTP 429 honouring ``Retry-After``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from marginboard.core.config import Settings
from marginboard.core.logging import get_logger
from marginboard.domain.universe import plain_ticker, provider_symbol
from marginboard.schemas.leaderboard import MetricSample

from .metrics import extract_margins, quality_score, quarterly_margin_series, stddev

logger = get_logger("financials.finnhub")


class FinnhubError(Exception):
    """A Finnhub request failed (status, transport or payload)."""


class FinnhubMetricFetcher:
    """
    Fetches margin metrics for single symbols.

    Pass a shared ``httpx.AsyncClient`` to reuse connections across a batch;
    without one each call opens its own client.
    """

    def __init__(
        self,
        base_url: str = "https://finnhub.io/api/v1",
        timeout: float = 8.0,
        include_series: bool = True,
        max_retry_after: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.include_series = include_series
        self.max_retry_after = max_retry_after
        self._client = client

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[httpx.AsyncClient] = None
    ) -> "FinnhubMetricFetcher":
        return cls(
            base_url=settings.finnhub_base_url,
            timeout=settings.finnhub_timeout,
            include_series=settings.finnhub_include_series,
            max_retry_after=settings.finnhub_max_retry_after,
            client=client,
        )

    async def fetch(
        self, symbol: str, credential: str, provider_suffix: str = ""
    ) -> Optional[MetricSample]:
        """Fetch one symbol. Returns None on any failure."""
        ticker = plain_ticker(symbol)
        finnhub_symbol = provider_symbol(ticker, provider_suffix)
        if not ticker:
            return None

        try:
            if self._client is not None:
                return await self._fetch(self._client, ticker, finnhub_symbol, credential)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await self._fetch(client, ticker, finnhub_symbol, credential)
        except FinnhubError as e:
            logger.warning(f"Metric fetch failed for {finnhub_symbol}: {e}", extra={"symbol": ticker})
            return None
        except httpx.TimeoutException:
            logger.warning(f"Timeout fetching metrics for {finnhub_symbol}", extra={"symbol": ticker})
            return None
        except httpx.HTTPError as e:
            logger.warning(
                f"HTTP error fetching metrics for {finnhub_symbol}: {type(e).__name__}",
                extra={"symbol": ticker},
            )
            return None

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        ticker: str,
        finnhub_symbol: str,
        credential: str,
    ) -> Optional[MetricSample]:
        payload = await self._get_json(
            client,
            "/stock/metric",
            {"symbol": finnhub_symbol, "metric": "all", "token": credential},
        )
        net, gross, period = extract_margins(payload)
        if net is None and gross is None:
            logger.debug(f"No margins reported for {finnhub_symbol}", extra={"symbol": ticker})
            return None

        net_series: list[float] = []
        gross_series: list[float] = []
        if self.include_series:
            series = await self._quarterly_series(client, ticker, finnhub_symbol, credential)
            if series:
                net_series, gross_series = series

        used_series = net_series or gross_series
        return MetricSample(
            symbol=ticker,
            provider_symbol=finnhub_symbol,
            net_margin=net,
            gross_margin=gross,
            quality_score=quality_score(net, gross, net_series, gross_series),
            period=period,
            net_series=[round(x, 2) for x in net_series],
            gross_series=[round(x, 2) for x in gross_series],
            volatility=round(stddev(used_series), 2) if used_series else None,
        )

    async def _quarterly_series(
        self,
        client: httpx.AsyncClient,
        ticker: str,
        finnhub_symbol: str,
        credential: str,
    ) -> Optional[tuple[list[float], list[float]]]:
        """Best-effort enrichment; failures leave the sample without series."""
        try:
            payload = await self._get_json(
                client,
                "/stock/financials-reported",
                {"symbol": finnhub_symbol, "freq": "quarterly", "token": credential},
            )
        except (FinnhubError, httpx.HTTPError) as e:
            logger.debug(
                f"Quarterly statements unavailable for {finnhub_symbol}: {type(e).__name__}",
                extra={"symbol": ticker},
            )
            return None
        return quarterly_margin_series(payload)

    async def _get_json(
        self, client: httpx.AsyncClient, path: str, params: dict[str, str]
    ) -> Any:
        url = f"{self.base_url}{path}"
        response = await client.get(url, params=params, timeout=self.timeout)

        if response.status_code == 429:
            delay = self._retry_after(response)
            logger.info(f"Finnhub rate limited on {path}, retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
            response = await client.get(url, params=params, timeout=self.timeout)

        if response.status_code != 200:
            raise FinnhubError(f"{path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise FinnhubError(f"{path} returned malformed JSON") from e

    def _retry_after(self, response: httpx.Response) -> float:
        try:
            seconds = float(response.headers.get("retry-after", "1"))
        except ValueError:
            seconds = 1.0
        return min(max(seconds, 1.0), self.max_retry_after)
