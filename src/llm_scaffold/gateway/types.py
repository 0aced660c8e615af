"""Gateway types for the llm-scaffold provider layer.

This module defines the vendor-agnostic request/response shapes that every
provider adapter is normalized to and from.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Normalized finish reasons (closed set)
FINISH_COMPLETE = "complete"
FINISH_LENGTH = "length"
FINISH_TOOL_USE = "tool_use"
FINISH_ERROR = "error"
FINISH_UNKNOWN = "unknown"

FINISH_REASONS = (
    FINISH_COMPLETE,
    FINISH_LENGTH,
    FINISH_TOOL_USE,
    FINISH_ERROR,
    FINISH_UNKNOWN,
)

VALID_ROLES = ("user", "assistant", "system")


@dataclass
class Message:
    """A single conversation turn."""

    role: str  # "user", "assistant", "system"
    content: str

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(f"invalid role '{self.role}', must be one of {VALID_ROLES}")


@dataclass
class CompletionRequest:
    """Vendor-agnostic completion request.

    ``metadata`` carries free-form routing hints such as ``complexity``
    ("simple" / "complex") and ``useCase`` ("embeddings").
    """

    messages: List[Message]
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    tools: Optional[List[Dict[str, Any]]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionRequest":
        """Build a request from a plain dict (camelCase or snake_case keys)."""
        messages = [
            m if isinstance(m, Message) else Message(role=m["role"], content=m["content"])
            for m in data.get("messages", [])
        ]
        temperature = data.get("temperature")
        max_tokens = data.get("max_tokens", data.get("maxTokens"))
        return cls(
            messages=messages,
            system_prompt=data.get("system_prompt", data.get("systemPrompt")),
            model=data.get("model"),
            temperature=0.7 if temperature is None else temperature,
            max_tokens=4096 if max_tokens is None else max_tokens,
            tools=data.get("tools"),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class UsageInfo:
    """Token usage for a single completion.

    ``total_tokens`` is always derived from the input and output counts.
    """

    input_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self) -> None:
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError("token counts must be non-negative")

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class CompletionResponse:
    """Normalized response returned to callers."""

    content: str
    model: str
    provider: str
    usage: UsageInfo = field(default_factory=UsageInfo)
    finish_reason: str = FINISH_UNKNOWN
    # Vendor value before normalization, kept for debugging
    raw_finish_reason: Optional[str] = None

    def __post_init__(self) -> None:
        if self.finish_reason not in FINISH_REASONS:
            raise ValueError(
                f"invalid finish_reason '{self.finish_reason}', must be one of {FINISH_REASONS}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "model": self.model,
            "provider": self.provider,
            "usage": self.usage.to_dict(),
            "finish_reason": self.finish_reason,
            "raw_finish_reason": self.raw_finish_reason,
        }


@dataclass
class CompletionOptions:
    """Call-time options for ProviderManager.complete()."""

    provider: Optional[str] = None
    enable_fallback: bool = True


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of provider selection.

    Attributes:
        provider: Name of the selected provider.
        model: Model chosen by the routing rule or strategy, if any.
        reason: Which rule produced the decision (e.g. "explicit",
            "rule:simple-queries", "strategy:cost-optimized").
    """

    provider: str
    model: Optional[str]
    reason: str
