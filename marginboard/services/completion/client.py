"""
Credential-rotating completion client.

Every call shuffles the key pool and walks it sequentially against one
OpenAI-compatible chat-completions endpoint:
- rate limited key: skip to the next one
- any other failure (API error or otherwise): skip to the next one
- answer without an extractable JSON object: skip to the next one
- first parsed object wins

When the pool is spent the caller gets CredentialsExhaustedError (HTTP 429).
There are no per-key retries, so one call makes at most ``len(pool)``
upstream requests. Keys are referred to by attempt index in logs.
"""

from __future__ import annotations

import random
from typing import Any, Callable, Optional

from openai import APIError, AsyncOpenAI, RateLimitError

from marginboard.core.config import Settings
from marginboard.core.exceptions import ConfigurationError, CredentialsExhaustedError
from marginboard.core.logging import get_logger

from .credentials import CredentialPool
from .extraction import extract_json_object

logger = get_logger("completion.client")

ClientFactory = Callable[[str], AsyncOpenAI]


class CredentialRotatingClient:
    """Completion client that rotates through a pool of API keys."""

    def __init__(
        self,
        pool: CredentialPool,
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 20.0,
        temperature: float = 0.7,
        client_factory: Optional[ClientFactory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.pool = pool
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.temperature = temperature
        self._client_factory = client_factory or self._default_client
        self._rng = rng

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
    ) -> "CredentialRotatingClient":
        return cls(
            pool=CredentialPool.from_settings(settings),
            model=settings.completion_model,
            base_url=settings.completion_base_url,
            timeout=settings.completion_timeout,
            temperature=settings.completion_temperature,
            client_factory=client_factory,
        )

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        # Rotation replaces retries; the SDK must not retry on its own
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
        )

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """
        Send ``prompt`` and return the first JSON object any key produces.

        Raises:
            ConfigurationError: the pool is empty
            CredentialsExhaustedError: every key was rate limited, failed or
                answered without usable JSON
        """
        if not self.pool:
            raise ConfigurationError("No completion API keys configured")

        rate_limited = failed = unparseable = 0
        order = self.pool.shuffled(self._rng)

        for attempt, api_key in enumerate(order, start=1):
            try:
                text = await self._complete(api_key, prompt)
            except RateLimitError:
                rate_limited += 1
                logger.warning(
                    f"Key #{attempt} rate limited, trying next",
                    extra={"attempt": attempt, "pool_size": len(order)},
                )
                continue
            except APIError as e:
                failed += 1
                logger.warning(
                    f"Key #{attempt} failed: {type(e).__name__}",
                    extra={
                        "attempt": attempt,
                        "status_code": getattr(e, "status_code", None),
                    },
                )
                continue
            except Exception as e:
                failed += 1
                logger.warning(
                    f"Key #{attempt} failed unexpectedly: {type(e).__name__}",
                    extra={"attempt": attempt},
                )
                continue

            parsed = extract_json_object(text)
            if parsed is None:
                unparseable += 1
                logger.warning(
                    f"Key #{attempt} returned no JSON object", extra={"attempt": attempt}
                )
                continue

            logger.info(f"Completion succeeded on attempt {attempt}/{len(order)}")
            return parsed

        details = {
            "attempts": len(order),
            "rate_limited": rate_limited,
            "failed": failed,
            "unparseable": unparseable,
        }
        logger.error("Every completion key was exhausted", extra=details)
        raise CredentialsExhaustedError(details=details)

    async def _complete(self, api_key: str, prompt: str) -> str:
        client = self._client_factory(api_key)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        finally:
            await client.close()

        choices = getattr(response, "choices", None)
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        if message is None:
            return ""
        return message.content or ""
