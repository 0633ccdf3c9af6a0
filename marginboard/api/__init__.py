"""API module with routers and dependencies."""

from .app import create_api_app
from .dependencies import (
    get_completion_client,
    get_leaderboard_cache,
    get_leaderboard_reader,
    require_cron_token,
)


__all__ = [
    "create_api_app",
    "get_completion_client",
    "get_leaderboard_cache",
    "get_leaderboard_reader",
    "require_cron_token",
]
