"""Shared test configuration and fixtures."""
from typing import Any, Dict, List, Optional

import pytest

from llm_scaffold.gateway.base import BaseProvider, ProviderKind

# =============================================================================
# Environment Reset
# =============================================================================

_ENV_VARS = [
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "LLM_SCAFFOLD_CONFIG",
    "LLM_SCAFFOLD_DEFAULT_PROVIDER",
    "LLM_SCAFFOLD_DEFAULT_MODEL",
    "LLM_SCAFFOLD_ROUTING_STRATEGY",
    "LLM_SCAFFOLD_FALLBACK_ORDER",
    "LLM_SCAFFOLD_FALLBACK_ENABLED",
    "LLM_SCAFFOLD_TRACK_COSTS",
    "LLM_SCAFFOLD_LOG_LEVEL",
    "LLM_SCAFFOLD_LOCAL_BASE_URL",
    "LLM_SCAFFOLD_ENABLE_REFLECTION",
    "LLM_SCAFFOLD_API_TOKEN",
]


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    """Clear provider credentials and scaffold settings before each test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Drop any cached configuration so each test loads from its own environment
    monkeypatch.setattr("llm_scaffold.unified_config._global_config", None)


@pytest.fixture(autouse=True)
def reset_events():
    """Start every test with an empty event store."""
    from llm_scaffold.events import clear_events

    clear_events()
    yield
    clear_events()


# =============================================================================
# Scripted Providers
# =============================================================================

VENDOR_RESPONSES: Dict[ProviderKind, Dict[str, Any]] = {
    ProviderKind.ANTHROPIC: {
        "model": "claude-sonnet-4",
        "content": [{"type": "text", "text": "Hi from anthropic"}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 5},
    },
    ProviderKind.OPENAI: {
        "model": "gpt-4",
        "choices": [
            {"message": {"role": "assistant", "content": "Hi from openai"}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 999},
    },
    ProviderKind.GOOGLE: {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": "Hi from google"}]}, "finishReason": "STOP"}
        ],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5},
    },
}


class ScriptedProvider(BaseProvider):
    """Provider that records vendor requests and returns canned responses."""

    def __init__(
        self,
        name: str,
        kind: ProviderKind = ProviderKind.OPENAI,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        api_key: Optional[str] = "test-key",
        models: Optional[List[str]] = None,
        default_model: str = "model-default",
    ):
        self.kind = kind
        super().__init__(
            name=name,
            api_key=api_key,
            default_model=default_model,
            models=models or [f"{name}-large", f"{name}-small"],
        )
        self.response = response if response is not None else VENDOR_RESPONSES.get(kind, {})
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, vendor_request: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(vendor_request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider
