"""
stockwise exception hierarchy.

All stockwise exceptions inherit from StockwiseError, making it easy for
consumers to catch library-level errors while still distinguishing specific
failure modes.  Provider failures share a ``ProviderError`` base so the
aggregator can isolate them per provider.
"""

from __future__ import annotations

from typing import Any


class StockwiseError(Exception):
    """Base exception class for all stockwise errors."""


class ConfigurationError(StockwiseError):
    """Raised for configuration errors (no providers, missing keys, invalid values)."""


class DataProcessingError(StockwiseError):
    """Raised for data processing errors."""


class APIError(StockwiseError):
    """Raised for API communication errors."""


class ProviderError(APIError):
    """Raised when an AI provider call fails.

    Attributes:
        provider: Name of the provider that failed.
        status_code: HTTP status reported by the transport, if any.
    """

    def __init__(self, message: str, *, provider: str = "", status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TransportError(ProviderError):
    """Network or HTTP failure that is not retried."""


class RateLimitError(ProviderError):
    """HTTP 429 that persisted through every retry attempt.

    Attributes:
        attempts: Number of attempts made before giving up.
        last_error: The underlying exception from the final attempt.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        attempts: int = 0,
        last_error: BaseException | None = None,
    ):
        super().__init__(message, provider=provider, status_code=429)
        self.attempts = attempts
        self.last_error = last_error


class UnavailableError(ProviderError):
    """HTTP 503: the provider is temporarily down; not retried within a run."""

    def __init__(self, message: str, *, provider: str = ""):
        super().__init__(message, provider=provider, status_code=503)


class MalformedResponseError(ProviderError):
    """The provider answered, but its payload could not be parsed.

    Never raised by the gateway itself; the aggregator attaches it to a
    provider result together with the degraded advice it produced.

    Attributes:
        advice: The degraded advice built from the unparsable response.
        raw_content: The text the provider returned.
    """

    def __init__(self, message: str, *, provider: str = "", advice: Any = None, raw_content: str = ""):
        super().__init__(message, provider=provider)
        self.advice = advice
        self.raw_content = raw_content


class InvariantViolation(StockwiseError):
    """A provider recommendation broke a domain rule and was corrected in place.

    Instances are created and logged by the normalizer, never raised.
    """

    def __init__(self, rule: str, symbol: str = "", detail: str = ""):
        super().__init__(f"{rule}: " + " ".join(p for p in (symbol, detail) if p))
        self.rule = rule
        self.symbol = symbol
        self.detail = detail
