"""Business logic services."""

from . import completion, financials, leaderboard, leaderboard_job, leaderboard_reader


__all__ = [
    "completion",
    "financials",
    "leaderboard",
    "leaderboard_job",
    "leaderboard_reader",
]
