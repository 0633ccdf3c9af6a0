"""Pydantic schemas for API requests, responses and cached payloads."""

from .ai import ExampleSentenceRequest, ExampleSentenceResponse
from .common import ErrorResponse, HealthResponse
from .leaderboard import (
    JobRunResponse,
    MetricSample,
    Period,
    Snapshot,
    SnapshotResponse,
)


__all__ = [
    "ErrorResponse",
    "ExampleSentenceRequest",
    "ExampleSentenceResponse",
    "HealthResponse",
    "JobRunResponse",
    "MetricSample",
    "Period",
    "Snapshot",
    "SnapshotResponse",
]
