"""Leaderboard schemas: per-symbol samples, cached snapshots and API responses."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


Period = Literal["TTM", "FY", "UNKNOWN"]


class MetricSample(BaseModel):
    """Margin metrics for one symbol from one provider fetch."""

    symbol: str = Field(..., description="Plain ticker as listed in the universe")
    provider_symbol: str = Field(..., description="Ticker as sent to the provider")
    net_margin: Optional[float] = Field(None, description="Net margin in percent")
    gross_margin: Optional[float] = Field(None, description="Gross margin in percent")
    quality_score: float = Field(..., description="Margin magnitude adjusted for stability")
    period: Period = Field(default="UNKNOWN", description="Reporting period of the margins")

    # Last four quarters, oldest first (empty when statements were unavailable)
    net_series: List[float] = Field(default_factory=list)
    gross_series: List[float] = Field(default_factory=list)
    volatility: Optional[float] = Field(None, description="Std-dev of the quarterly series")


class Snapshot(BaseModel):
    """Ranked leaderboards for one universe, as written to the cache."""

    universe: str
    updated_at: Optional[datetime] = None
    period_hint: Period = "UNKNOWN"
    top_net: List[MetricSample] = Field(default_factory=list)
    top_gross: List[MetricSample] = Field(default_factory=list)
    top_quality: List[MetricSample] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.top_net or self.top_gross or self.top_quality)

    def truncated(self, limit: int) -> "Snapshot":
        """Copy with every board cut down to ``limit`` entries."""
        return self.model_copy(
            update={
                "top_net": self.top_net[:limit],
                "top_gross": self.top_gross[:limit],
                "top_quality": self.top_quality[:limit],
            }
        )


class SnapshotResponse(Snapshot):
    """Public read response; ``note`` explains why boards are empty."""

    note: Optional[str] = Field(
        default=None,
        description="Set when no computed data is available",
        examples=["Leaderboard has not been computed yet"],
    )


class JobRunResponse(BaseModel):
    """Outcome of one leaderboard job run."""

    ok: bool = True
    saved: List[str] = Field(default_factory=list)
    stale: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    skipped: List[str] = Field(default_factory=list)
    at: Optional[datetime] = None
    error: Optional[str] = None
    message: Optional[str] = None
