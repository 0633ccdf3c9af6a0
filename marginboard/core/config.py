"""Application settings with Pydantic validation and environment loading."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Marginboard API"
    app_version: str = "1.0.0"
    debug: bool = Field(
        default=False, description="Enable debug mode (disable in production)"
    )
    root_path: str = Field(default="", description="Root path for reverse proxy")
    environment: str = Field(
        default="production",
        description="Environment: development, staging, production",
    )

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Valkey (Redis-compatible)
    valkey_url: str = Field(
        default="redis://valkey:6379/0", description="Valkey connection URL"
    )
    valkey_max_connections: int = Field(default=10, ge=1, le=100)
    leaderboard_cache_ttl: Optional[int] = Field(
        default=None,
        ge=60,
        description="TTL for leaderboard snapshots in seconds (None keeps them forever)",
    )

    # Financial data provider
    finnhub_api_key: str = Field(default="", alias="FINNHUB_API_KEY")
    finnhub_base_url: str = Field(default="https://finnhub.io/api/v1")
    finnhub_timeout: float = Field(
        default=8.0, gt=0, le=60, description="Per-request timeout in seconds"
    )
    finnhub_include_series: bool = Field(
        default=True, description="Fetch quarterly statements for margin stability"
    )
    finnhub_max_retry_after: float = Field(
        default=5.0, ge=1, le=60, description="Cap on Retry-After honoured for 429s"
    )

    # Leaderboards
    leaderboard_limit: int = Field(default=10, ge=1, le=50)
    leaderboard_concurrency: int = Field(
        default=6, ge=1, le=32, description="Parallel provider calls per universe"
    )
    leaderboard_job_budget_seconds: float = Field(
        default=25.0, gt=0, description="Wall-clock budget for one job run"
    )
    default_universe: str = Field(default="BIST100")
    nasdaq100_symbols: Annotated[List[str], NoDecode] = Field(default_factory=list)
    bist100_symbols: Annotated[List[str], NoDecode] = Field(default_factory=list)

    # Cron trigger
    cron_secret: str = Field(default="", alias="CRON_SECRET")

    # Text completion (OpenAI-compatible endpoint, rotating keys)
    completion_api_keys: Annotated[List[str], NoDecode] = Field(
        default_factory=list, alias="COMPLETION_API_KEYS"
    )
    completion_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/"
    )
    completion_model: str = Field(default="gemini-2.5-flash")
    completion_timeout: float = Field(default=20.0, gt=0, le=120)
    completion_temperature: float = Field(default=0.7, ge=0, le=2)

    # Logging
    log_level: str = Field(
        default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR"
    )
    log_format: str = Field(default="json", description="Log format: json or text")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("nasdaq100_symbols", "bist100_symbols", mode="before")
    @classmethod
    def parse_symbols(cls, v):
        if isinstance(v, str):
            return [s.strip().upper() for s in v.split(",") if s.strip()]
        return v

    @field_validator("completion_api_keys", mode="before")
    @classmethod
    def parse_api_keys(cls, v):
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v

    @field_validator("default_universe")
    @classmethod
    def normalize_universe(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Cached settings factory."""
    return Settings()


settings = get_settings()
