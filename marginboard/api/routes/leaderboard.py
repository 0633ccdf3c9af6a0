"""Public leaderboard read endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from marginboard.schemas.leaderboard import SnapshotResponse
from marginboard.services.leaderboard_reader import LeaderboardReader

from ..dependencies import get_leaderboard_reader


router = APIRouter()


@router.get(
    "/top-margins",
    response_model=SnapshotResponse,
    summary="Latest margin leaderboards",
    description=(
        "Top net margin, gross margin and quality-score boards for a universe. "
        "Always returns 200; empty boards carry a note."
    ),
)
async def get_top_margins(
    universe: Optional[str] = Query(
        default=None, description="Universe name (unknown names use the default)"
    ),
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    reader: LeaderboardReader = Depends(get_leaderboard_reader),
) -> SnapshotResponse:
    return await reader.get_snapshot(universe, limit=limit)
