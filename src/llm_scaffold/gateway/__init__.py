"""llm-scaffold provider gateway.

One request/response shape across Anthropic, OpenAI, Google and local
OpenAI-compatible servers, with:

- Per-vendor request/response normalization
- Rule- and strategy-based provider routing
- Sequential fallback across a configured provider order
- Per-provider cost tracking

Example usage:
    from llm_scaffold.gateway import CompletionRequest, Message, initialize_providers

    manager = initialize_providers()
    request = CompletionRequest(
        messages=[Message(role="user", content="Hello")],
        metadata={"complexity": "simple"},
    )
    response = await manager.complete(request)
"""

from .types import (
    CompletionOptions,
    CompletionRequest,
    CompletionResponse,
    Message,
    RouteDecision,
    UsageInfo,
)
from .base import BaseProvider, ProviderKind
from .errors import (
    AdapterFailure,
    AllProvidersFailedError,
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    InvalidRequestError,
    ProviderHTTPError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    RateLimitError,
)
from .normalizer import VendorNormalizer, get_normalizer
from .providers import (
    AnthropicProvider,
    GoogleProvider,
    LocalProvider,
    OpenAIProvider,
)
from .costs import CostTracker, ModelPrice
from .router import ProviderRouter
from .fallback import FallbackController
from .manager import ProviderManager, initialize_providers

__all__ = [
    # Types
    "CompletionOptions",
    "CompletionRequest",
    "CompletionResponse",
    "Message",
    "RouteDecision",
    "UsageInfo",
    # Base
    "BaseProvider",
    "ProviderKind",
    # Errors
    "AdapterFailure",
    "AllProvidersFailedError",
    "AuthenticationError",
    "ConfigurationError",
    "GatewayError",
    "InvalidRequestError",
    "ProviderHTTPError",
    "ProviderNotFoundError",
    "ProviderTimeoutError",
    "RateLimitError",
    # Normalization
    "VendorNormalizer",
    "get_normalizer",
    # Adapters
    "AnthropicProvider",
    "GoogleProvider",
    "LocalProvider",
    "OpenAIProvider",
    # Costs
    "CostTracker",
    "ModelPrice",
    # Routing
    "ProviderRouter",
    "FallbackController",
    "ProviderManager",
    "initialize_providers",
]
