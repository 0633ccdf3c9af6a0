"""Domain models shared across services."""

from .universe import (
    Universe,
    build_universes,
    dedupe_symbols,
    plain_ticker,
    provider_symbol,
    resolve_universe,
)


__all__ = [
    "Universe",
    "build_universes",
    "dedupe_symbols",
    "plain_ticker",
    "provider_symbol",
    "resolve_universe",
]
