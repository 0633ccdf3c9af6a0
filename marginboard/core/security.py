"""Security utilities: shared-secret checks for machine-triggered endpoints."""

from __future__ import annotations

import secrets
from typing import Optional

from .exceptions import AuthenticationError


def verify_shared_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """Validate a shared-secret token using constant-time comparison.

    Raises AuthenticationError when the server has no secret configured, the
    caller sent none, or the two differ.
    """
    if not expected:
        raise AuthenticationError(
            message="Trigger secret is not configured", error_code="UNAUTHORIZED"
        )
    if not provided:
        raise AuthenticationError(message="Missing token", error_code="UNAUTHORIZED")
    if not secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError(message="Invalid token", error_code="UNAUTHORIZED")
