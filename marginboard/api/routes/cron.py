"""Cron trigger for the leaderboard job."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from marginboard.cache.leaderboard import LeaderboardCache
from marginboard.core.config import Settings
from marginboard.core.exceptions import ConfigurationError
from marginboard.core.logging import get_logger
from marginboard.domain.universe import Universe
from marginboard.schemas.leaderboard import JobRunResponse
from marginboard.services.leaderboard import MetricFetcher
from marginboard.services.leaderboard_job import LeaderboardJob

from ..dependencies import (
    get_app_settings,
    get_leaderboard_cache,
    get_metric_fetcher,
    get_universes,
    require_cron_token,
)


router = APIRouter()

logger = get_logger("api.cron")


@router.get(
    "/top-margins",
    response_model=JobRunResponse,
    response_model_exclude_none=True,
    summary="Recompute margin leaderboards",
    description="Compute every universe and cache the snapshots. Requires the cron token.",
    dependencies=[Depends(require_cron_token)],
)
async def run_top_margins(
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
    universes: dict[str, Universe] = Depends(get_universes),
    settings: Settings = Depends(get_app_settings),
    fetcher: Optional[MetricFetcher] = Depends(get_metric_fetcher),
) -> JobRunResponse:
    """
    Run the leaderboard job.

    Always answers 200 once authenticated; failures are reported in the body
    so the scheduler does not retry into a broken upstream.
    """
    job = LeaderboardJob(cache, universes.values(), settings, fetcher=fetcher)
    try:
        return await job.run()
    except ConfigurationError as e:
        logger.error(f"Leaderboard job not run: {e.message}")
        return JobRunResponse(ok=False, error=e.error_code, message=e.message)
    except Exception:
        logger.exception("Leaderboard job crashed")
        return JobRunResponse(ok=False, error="cron_failed")
