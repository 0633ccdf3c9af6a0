"""Financial data provider access and margin metrics."""

from .finnhub import FinnhubError, FinnhubMetricFetcher
from .metrics import extract_margins, quality_score, quarterly_margin_series


__all__ = [
    "FinnhubError",
    "FinnhubMetricFetcher",
    "extract_margins",
    "quality_score",
    "quarterly_margin_series",
]
