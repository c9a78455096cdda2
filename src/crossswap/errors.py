"""Error taxonomy for route aggregation.

Only request-level errors (invalid input, all providers down, rate limit)
reach callers. Provider and malformed-route errors stay inside the
aggregator and are converted into "this provider contributed nothing".
"""

from enum import Enum
from typing import Optional


class RoutingError(Exception):
    """Base class for all routing errors.

    Attributes:
        reason: Human-readable explanation, safe to show to end users
        status_code: HTTP-equivalent status class
    """

    status_code: int = 500
    error: str = "routing_error"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {"success": False, "error": self.error, "reason": self.reason}


class InvalidRequestError(RoutingError):
    """Missing or malformed token identifiers, bad amount or slippage."""

    status_code = 400
    error = "invalid_request"


class ProviderErrorKind(str, Enum):
    """Classification of upstream failures."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP_STATUS = "http_status"
    RATE_LIMITED = "rate_limited"
    BAD_RESPONSE = "bad_response"
    UNSUPPORTED = "unsupported"


class ProviderError(RoutingError):
    """A single upstream quote service failed."""

    status_code = 502
    error = "provider_error"

    def __init__(
        self,
        provider: str,
        kind: ProviderErrorKind,
        reason: str,
        status: Optional[int] = None,
    ):
        super().__init__(reason)
        self.provider = provider
        self.kind = kind
        self.status = status

    def __str__(self) -> str:
        return f"{self.provider}: {self.reason} ({self.kind.value})"

    @classmethod
    def from_status(cls, provider: str, status: int) -> "ProviderError":
        """Map an upstream HTTP status to a provider error."""
        if status == 429:
            return cls(
                provider,
                ProviderErrorKind.RATE_LIMITED,
                "Upstream rate limit exceeded. Please try again later.",
                status,
            )
        if status >= 500:
            return cls(
                provider,
                ProviderErrorKind.HTTP_STATUS,
                f"{provider} is temporarily unavailable.",
                status,
            )
        if status == 400:
            return cls(
                provider,
                ProviderErrorKind.HTTP_STATUS,
                "Upstream rejected the request parameters.",
                status,
            )
        return cls(
            provider,
            ProviderErrorKind.HTTP_STATUS,
            f"Upstream request failed with status {status}.",
            status,
        )


class AllProvidersUnavailableError(RoutingError):
    """Every provider failed for a request. Retryable."""

    status_code = 503
    error = "all_providers_unavailable"

    def __init__(self, failures: dict[str, str]):
        self.failures = failures
        names = ", ".join(sorted(failures)) or "none configured"
        super().__init__(f"No quote provider is currently available ({names}). Please retry shortly.")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["providers"] = self.failures
        return data


class RateLimitExceededError(RoutingError):
    """Caller exceeded its request quota."""

    status_code = 429
    error = "rate_limit_exceeded"

    def __init__(self, retry_after_seconds: int, limit: int, window_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        self.limit = limit
        self.window_seconds = window_seconds
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window_seconds}s. "
            f"Retry in {retry_after_seconds}s."
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after"] = self.retry_after_seconds
        return data


class MalformedRouteError(RoutingError):
    """A provider returned a structurally invalid route. Logged, never surfaced."""

    error = "malformed_route"

    def __init__(self, provider: str, reason: str):
        super().__init__(reason)
        self.provider = provider
