"""Pytest configuration and fixtures."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable, Generator, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from marginboard.cache.leaderboard import LeaderboardCache
from marginboard.core.config import Settings
from marginboard.core.exceptions import CacheError
from marginboard.domain.universe import Universe, provider_symbol
from marginboard.schemas.leaderboard import MetricSample, Period
from marginboard.services.financials.metrics import quality_score


# ============================================================================
# Cache doubles
# ============================================================================


class InMemoryStore:
    """KeyValueStore double backed by a dict."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}
        self.writes: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self.data[key] = value
        self.ttls[key] = ttl
        self.writes.append(key)


class FailingStore:
    """KeyValueStore double whose backend is down."""

    async def get(self, key: str) -> Optional[str]:
        raise CacheError(f"Cache read failed for {key}")

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        raise CacheError(f"Cache write failed for {key}")


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def cache(store: InMemoryStore) -> LeaderboardCache:
    return LeaderboardCache(store)


# ============================================================================
# Settings and universes
# ============================================================================


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "finnhub_api_key": "test-finnhub-key",
        "cron_secret": "test-cron-secret",
        "completion_api_keys": ["key-a", "key-b", "key-c"],
        "leaderboard_limit": 10,
        "leaderboard_job_budget_seconds": 5.0,
        "finnhub_include_series": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def universes() -> dict[str, Universe]:
    return {
        "BIST100": Universe.create("BIST100", ["THYAO", "ASELS", "BIMAS"], ".IS"),
        "NASDAQ100": Universe.create("NASDAQ100", ["AAPL", "MSFT", "NVDA"]),
    }


# ============================================================================
# Fetcher double
# ============================================================================


class FakeFetcher:
    """
    MetricFetcher double.

    ``margins`` maps symbol -> (net, gross), an exception to raise, or None
    for a symbol the provider does not know.
    """

    def __init__(self, margins: dict[str, Any], period: Period = "TTM"):
        self.margins = margins
        self.period = period
        self.calls: list[tuple[str, str, str]] = []

    async def fetch(
        self, symbol: str, credential: str, provider_suffix: str = ""
    ) -> Optional[MetricSample]:
        self.calls.append((symbol, credential, provider_suffix))
        value = self.margins.get(symbol)
        if isinstance(value, BaseException):
            raise value
        if value is None:
            return None
        net, gross = value
        return MetricSample(
            symbol=symbol,
            provider_symbol=provider_symbol(symbol, provider_suffix),
            net_margin=net,
            gross_margin=gross,
            quality_score=quality_score(net, gross),
            period=self.period,
        )


@pytest.fixture
def fake_fetcher_factory() -> Callable[..., FakeFetcher]:
    return FakeFetcher


# ============================================================================
# OpenAI-compatible completion doubles
# ============================================================================

_REQUEST = httpx.Request("POST", "https://completion.test/v1/chat/completions")


def rate_limit_error() -> openai.RateLimitError:
    return openai.RateLimitError(
        "quota exceeded", response=httpx.Response(429, request=_REQUEST), body=None
    )


def server_error() -> openai.InternalServerError:
    return openai.InternalServerError(
        "upstream failure", response=httpx.Response(500, request=_REQUEST), body=None
    )


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=_REQUEST)


def completion(text: Optional[str]) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class ScriptedOpenAI:
    """
    Client factory whose n-th built client plays the n-th scripted outcome.

    An outcome is response text, a raw response object or an exception instance.
    """

    def __init__(self, outcomes: list[Any]):
        self.outcomes = list(outcomes)
        self.keys: list[str] = []
        self.clients: list[MagicMock] = []

    def __call__(self, api_key: str) -> MagicMock:
        index = len(self.keys)
        self.keys.append(api_key)
        outcome = self.outcomes[index]

        client = MagicMock()
        if isinstance(outcome, BaseException):
            client.chat.completions.create = AsyncMock(side_effect=outcome)
        elif isinstance(outcome, SimpleNamespace):
            client.chat.completions.create = AsyncMock(return_value=outcome)
        else:
            client.chat.completions.create = AsyncMock(return_value=completion(outcome))
        client.close = AsyncMock()
        self.clients.append(client)
        return client

    @property
    def calls(self) -> int:
        return len(self.keys)


@pytest.fixture
def scripted_openai() -> Callable[[list[Any]], ScriptedOpenAI]:
    return ScriptedOpenAI


@pytest.fixture
def openai_errors() -> SimpleNamespace:
    """Factories for the SDK errors the rotating client distinguishes."""
    return SimpleNamespace(
        rate_limit=rate_limit_error,
        server=server_error,
        connection=connection_error,
    )


# ============================================================================
# API client
# ============================================================================


@pytest.fixture
def app(store: InMemoryStore, test_settings: Settings, universes: dict[str, Universe]):
    """FastAPI app with cache, settings and universes swapped for test doubles."""
    from marginboard.api import dependencies as deps
    from marginboard.api.app import create_api_app

    app = create_api_app()
    app.dependency_overrides[deps.get_key_value_store] = lambda: store
    app.dependency_overrides[deps.get_app_settings] = lambda: test_settings
    app.dependency_overrides[deps.get_universes] = lambda: universes
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, mocker) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    mocker.patch("marginboard.api.app.init_valkey_pool", new_callable=AsyncMock)
    mocker.patch("marginboard.api.app.close_valkey_client", new_callable=AsyncMock)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
