"""
Provider gateway: one AI backend call with retry/backoff and decoding.

Every provider speaks the OpenAI chat-completions protocol at its own
``base_url``; litellm is the transport.  Retries are handled here (litellm's
own retries are disabled) so the policy stays provider-local:

- HTTP 429: wait ``attempt * rate_limit_base_delay`` and retry, up to
  ``max_attempts``; then raise :class:`RateLimitError`.
- HTTP 503: raise :class:`UnavailableError` immediately.
- anything else: raise :class:`TransportError` immediately.

A response that arrives but cannot be decoded is *not* an error: it comes
back as a :class:`DegradedResponse`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from stockwise.core.config_schema import GatewayConfig
from stockwise.core.exceptions import RateLimitError, TransportError, UnavailableError
from stockwise.core.llm.utils import safe_get_content

from .models import DegradedResponse, ProviderConfig, RawResponse
from .parsing import decode_response

SleepFn = Callable[[float], Awaitable[None]]


def _status_code(error: BaseException) -> int | None:
    """HTTP status carried by a litellm/openai exception, if any."""
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


class ProviderGateway:
    """Invoke AI providers through litellm.

    Args:
        max_attempts: Attempts per call when rate limited.
        rate_limit_base_delay: Seconds multiplied by the attempt number
            before retrying a 429.
        timeout: Per-request timeout in seconds.
        temperature: Sampling temperature.
        max_tokens: Completion token cap.
        sleep: Awaitable used for backoff waits (injectable for tests).
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        rate_limit_base_delay: float = 5.0,
        timeout: int = 180,
        temperature: float = 0.7,
        max_tokens: int = 8000,
        sleep: SleepFn = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.rate_limit_base_delay = rate_limit_base_delay
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: GatewayConfig) -> ProviderGateway:
        return cls(
            max_attempts=config.max_attempts,
            rate_limit_base_delay=config.rate_limit_base_delay,
            timeout=config.timeout,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )

    async def invoke(self, config: ProviderConfig, prompt: str) -> RawResponse:
        """Send *prompt* to the provider and decode its answer.

        Raises:
            RateLimitError: Still rate limited after the last attempt.
            UnavailableError: The provider answered 503.
            TransportError: Any other transport or HTTP failure.
        """
        try:
            import litellm
        except ImportError as e:
            raise ImportError("litellm is required for provider calls: pip install litellm") from e

        kwargs = self._build_completion_kwargs(config, prompt)
        last_error: BaseException | None = None

        for attempt in range(1, self.max_attempts + 1):
            logger.debug(f"{config.name}: attempt {attempt}/{self.max_attempts} ({config.model})")
            try:
                response = await litellm.acompletion(**kwargs)
            except Exception as e:
                status = _status_code(e)
                if status == 429:
                    last_error = e
                    if attempt < self.max_attempts:
                        wait = attempt * self.rate_limit_base_delay
                        logger.warning(f"{config.name}: rate limited, retrying in {wait:g}s")
                        await self._sleep(wait)
                    continue
                if status == 503:
                    logger.warning(f"{config.name}: service unavailable (503), skipping")
                    raise UnavailableError(f"{config.name} is temporarily unavailable", provider=config.name) from e
                raise TransportError(
                    f"{config.name} request failed: {type(e).__name__}: {e}",
                    provider=config.name,
                    status_code=status,
                ) from e

            return self._decode(config, response)

        logger.error(f"{config.name}: still rate limited after {self.max_attempts} attempts")
        raise RateLimitError(
            f"{config.name} rate limited after {self.max_attempts} attempts: {last_error}",
            provider=config.name,
            attempts=self.max_attempts,
            last_error=last_error,
        ) from last_error

    def _decode(self, config: ProviderConfig, response: Any) -> RawResponse:
        content = safe_get_content(response)
        raw = decode_response(content)
        if isinstance(raw, DegradedResponse):
            preview = (content or "")[:200].replace("\n", " ")
            logger.warning(f"{config.name}: unparsable response ({raw.reason}): {preview!r}")
        else:
            logger.debug(f"{config.name}: decoded response with {len(raw.payload)} top-level keys")
        return raw

    def _build_completion_kwargs(self, config: ProviderConfig, prompt: str) -> dict[str, Any]:
        """Build kwargs for litellm.acompletion against an OpenAI-compatible endpoint."""
        return {
            "model": config.model,
            "custom_llm_provider": "openai",
            "api_base": config.base_url.rstrip("/"),
            "api_key": config.api_key,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "num_retries": 0,
            "stream": False,
        }
