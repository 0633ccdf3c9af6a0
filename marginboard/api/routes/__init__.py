"""API routes package."""

from . import ai, cron, health, leaderboard


__all__ = [
    "ai",
    "cron",
    "health",
    "leaderboard",
]
