"""
Exception hierarchy for the aggregation layer.

Adapter failures are ``ProviderError``; the engine converts them into empty
per-provider results and only raises the aggregation errors upward, where the
fallback policy intercepts them.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class NewsdeskError(Exception):
    """Base exception for everything raised by newsdesk."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class ProviderErrorKind(str, Enum):
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


class ProviderError(NewsdeskError):
    """A single provider call failed."""

    def __init__(self, kind: ProviderErrorKind, provider: str, message: str, status: Optional[int] = None):
        context: Dict[str, Any] = {"provider": provider, "kind": kind.value}
        if status is not None:
            context["status"] = status
        super().__init__(message, error_code=kind.value, context=context)
        self.kind = kind
        self.provider = provider
        self.status = status

    @property
    def is_rate_limit(self) -> bool:
        return self.kind is ProviderErrorKind.RATE_LIMITED or self.status == 429


class AggregationError(NewsdeskError):
    pass


class NoProvidersAvailable(AggregationError):
    """The manager returned no eligible provider before any call was attempted."""

    def __init__(self, feature: str):
        super().__init__(f"No providers available for {feature}", context={"feature": feature})
        self.feature = feature


class AggregationExhausted(AggregationError):
    """Every eligible provider was tried and nothing usable came back."""

    def __init__(self, feature: str, attempted: int):
        super().__init__(
            f"No articles loaded for {feature} from {attempted} provider(s)",
            context={"feature": feature, "attempted": attempted},
        )
        self.feature = feature
        self.attempted = attempted


class FallbackFailed(NewsdeskError):
    """The local fallback provider could not serve the request either."""
