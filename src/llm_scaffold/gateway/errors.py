"""Error taxonomy for the provider gateway.

Configuration and request errors are raised before any adapter is called and
are never retried. Adapter failures are caught only by the fallback
controller. Exhausting the fallback chain raises AllProvidersFailedError.
"""

from typing import Dict, List, Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class ConfigurationError(GatewayError):
    """Provider configuration is invalid for the requested operation."""


class ProviderNotFoundError(ConfigurationError):
    """A provider name was requested that is not registered."""

    def __init__(self, provider: str):
        super().__init__(f"Provider {provider} not found", provider=provider)


class InvalidRequestError(GatewayError):
    """The completion request cannot be sent to any adapter."""


class AdapterFailure(GatewayError):
    """A vendor call failed (network, auth, rate limit, bad status)."""


class ProviderTimeoutError(AdapterFailure):
    """The vendor did not answer within the configured timeout."""


class RateLimitError(AdapterFailure):
    """The vendor rejected the call with HTTP 429."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class AuthenticationError(AdapterFailure):
    """The vendor rejected the credential (HTTP 401/403) or none is set."""


class ProviderHTTPError(AdapterFailure):
    """The vendor returned an unexpected HTTP status."""

    def __init__(self, message: str, provider: Optional[str] = None, status_code: int = 0):
        super().__init__(message, provider=provider)
        self.status_code = status_code


class AllProvidersFailedError(GatewayError):
    """Every candidate in the fallback chain failed.

    Attributes:
        last_provider: The last provider attempted.
        attempted: Providers attempted, in order.
        errors: Error message per attempted provider.
    """

    def __init__(
        self,
        last_provider: str,
        attempted: List[str],
        errors: Dict[str, str],
    ):
        super().__init__(
            f"All providers failed (attempted: {', '.join(attempted)})",
            provider=last_provider,
        )
        self.last_provider = last_provider
        self.attempted = list(attempted)
        self.errors = dict(errors)
