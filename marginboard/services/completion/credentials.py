"""Credential pool for the rotating completion client."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Optional

from marginboard.core.config import Settings


@dataclass(frozen=True)
class CredentialPool:
    """Ordered, deduplicated set of opaque API keys. Never logged."""

    keys: tuple[str, ...] = ()

    @classmethod
    def create(cls, keys: Iterable[Optional[str]]) -> "CredentialPool":
        seen: dict[str, None] = {}
        for key in keys:
            value = (key or "").strip()
            if value:
                seen.setdefault(value, None)
        return cls(keys=tuple(seen))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialPool":
        return cls.create(settings.completion_api_keys)

    def __len__(self) -> int:
        return len(self.keys)

    def __bool__(self) -> bool:
        return bool(self.keys)

    def __repr__(self) -> str:
        return f"CredentialPool(size={len(self.keys)})"

    def shuffled(self, rng: Optional[random.Random] = None) -> list[str]:
        """Fresh random permutation of the keys."""
        order = list(self.keys)
        (rng or random.SystemRandom()).shuffle(order)
        return order
