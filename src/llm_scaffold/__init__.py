"""llm-scaffold - provider routing and fallback for LLM-backed apps.

Usage:
    from llm_scaffold import CompletionRequest, Message, initialize_providers

    manager = initialize_providers()
    response = await manager.complete(
        CompletionRequest(messages=[Message(role="user", content="Hello")])
    )
    print(response.content, manager.get_cost_summary())
"""

from llm_scaffold.gateway import (
    AllProvidersFailedError,
    CompletionOptions,
    CompletionRequest,
    CompletionResponse,
    CostTracker,
    GatewayError,
    Message,
    ProviderManager,
    ProviderNotFoundError,
    UsageInfo,
    initialize_providers,
)
from llm_scaffold.unified_config import UnifiedConfig, get_config, reload_config

__version__ = "0.1.0"

__all__ = [
    # Gateway
    "AllProvidersFailedError",
    "CompletionOptions",
    "CompletionRequest",
    "CompletionResponse",
    "CostTracker",
    "GatewayError",
    "Message",
    "ProviderManager",
    "ProviderNotFoundError",
    "UsageInfo",
    "initialize_providers",
    # Configuration
    "UnifiedConfig",
    "get_config",
    "reload_config",
    "__version__",
]
