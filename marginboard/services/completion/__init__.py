"""Rate-limit-aware text completion over a rotating key pool."""

from .client import CredentialRotatingClient
from .credentials import CredentialPool
from .extraction import extract_json_object


__all__ = [
    "CredentialPool",
    "CredentialRotatingClient",
    "extract_json_object",
]
