"""Symbol universes.

A universe is a named, ordered, deduplicated set of tickers that the
leaderboard job ranks together. Universes are built once at startup from
settings and passed explicitly to the services that need them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from marginboard.core.config import Settings


NASDAQ100_DEFAULT = (
    "AAPL", "MSFT", "NVDA", "AMZN", "META", "GOOG", "GOOGL", "TSLA", "NFLX", "ADBE",
    "AMD", "INTU", "PEP", "QCOM", "AMGN", "ADI", "CSCO", "TMUS", "REGN", "VRTX",
    "SNPS", "CDNS", "PANW", "CRWD", "MU", "LRCX", "KLAC", "ASML", "AVGO", "TXN",
)

BIST100_DEFAULT = (
    "AKBNK", "ALARK", "ARCLK", "ASELS", "BIMAS", "BRYAT", "CIMSA", "DOAS", "EKGYO",
    "ENJSA", "EREGL", "FROTO", "GARAN", "GUBRF", "HALKB", "HEKTS", "ISCTR", "KCHOL",
    "KOZAA", "KOZAL", "KRDMD", "MGROS", "PETKM", "SAHOL", "SISE", "TCELL", "THYAO",
    "TOASO", "TTKOM", "TUPRS", "YKBNK",
)

# Finnhub lists Borsa Istanbul listings as TICKER.IS
BIST_SUFFIX = ".IS"


def plain_ticker(symbol: str) -> str:
    """Strip an ``EXCHANGE:`` prefix and normalize case.

    >>> plain_ticker("NASDAQ:aapl")
    'AAPL'
    """
    s = str(symbol or "").strip()
    _, sep, rest = s.partition(":")
    return (rest if sep else s).strip().upper()


def provider_symbol(symbol: str, suffix: str = "") -> str:
    """Ticker as the data provider expects it (e.g. ``BIMAS`` -> ``BIMAS.IS``)."""
    ticker = plain_ticker(symbol)
    if not ticker or not suffix or "." in ticker:
        return ticker
    return f"{ticker}{suffix}"


def dedupe_symbols(symbols: Iterable[str]) -> tuple[str, ...]:
    """Normalize and deduplicate symbols, keeping first-seen order."""
    seen: dict[str, None] = {}
    for raw in symbols:
        ticker = plain_ticker(raw)
        if ticker:
            seen.setdefault(ticker, None)
    return tuple(seen)


@dataclass(frozen=True)
class Universe:
    """A named symbol universe."""

    name: str
    symbols: tuple[str, ...]
    provider_suffix: str = ""

    @classmethod
    def create(cls, name: str, symbols: Iterable[str], provider_suffix: str = "") -> "Universe":
        return cls(
            name=name.strip().upper(),
            symbols=dedupe_symbols(symbols),
            provider_suffix=provider_suffix,
        )


def build_universes(settings: Settings) -> dict[str, Universe]:
    """Build the configured universes, keyed by upper-case name."""
    universes = [
        Universe.create("BIST100", settings.bist100_symbols or BIST100_DEFAULT, BIST_SUFFIX),
        Universe.create("NASDAQ100", settings.nasdaq100_symbols or NASDAQ100_DEFAULT),
    ]
    return {u.name: u for u in universes}


def resolve_universe(
    name: str | None,
    universes: Mapping[str, Universe],
    default: str,
) -> Universe:
    """Case-insensitive lookup that falls back to ``default`` for unknown names."""
    key = (name or "").strip().upper()
    if key in universes:
        return universes[key]
    if default in universes:
        return universes[default]
    # Misconfigured default: first configured universe
    return next(iter(universes.values()))
