"""Core infrastructure: settings, logging, exceptions, security."""

from .config import Settings, get_settings, settings
from .exceptions import (
    AppException,
    AuthenticationError,
    CacheError,
    ConfigurationError,
    CredentialsExhaustedError,
    RateLimitError,
)
from .security import verify_shared_secret


__all__ = [
    "AppException",
    "AuthenticationError",
    "CacheError",
    "ConfigurationError",
    "CredentialsExhaustedError",
    "RateLimitError",
    "Settings",
    "get_settings",
    "settings",
    "verify_shared_secret",
]
