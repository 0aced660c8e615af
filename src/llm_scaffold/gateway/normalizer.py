"""Request/response normalization between the uniform shape and vendor shapes.

There is one normalizer per ProviderKind:

- AnthropicNormalizer: system prompt sent as a dedicated ``system`` field
- OpenAINormalizer: system prompt prepended as a ``system`` message
- GoogleNormalizer: chat-history ``contents`` with ``user``/``model`` roles,
  system prompt folded into the first user turn
- GenericNormalizer: OpenAI-like request, ``content``/``text`` response

Responses are validated against an explicit pydantic schema per vendor, with
content and usage checked separately. Whichever part does not match degrades
to its empty value (empty content, zero tokens); parsing never raises.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .base import ProviderKind
from .types import (
    FINISH_COMPLETE,
    FINISH_ERROR,
    FINISH_LENGTH,
    FINISH_TOOL_USE,
    FINISH_UNKNOWN,
    CompletionRequest,
    CompletionResponse,
    Message,
    UsageInfo,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Vendor Response Schemas
# =============================================================================


class _VendorModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class AnthropicContentBlock(_VendorModel):
    type: str = "text"
    text: Optional[str] = None


class AnthropicUsage(_VendorModel):
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class AnthropicResponse(_VendorModel):
    model: Optional[str] = None
    content: List[AnthropicContentBlock] = []
    stop_reason: Optional[str] = None


class OpenAIChoiceMessage(_VendorModel):
    role: Optional[str] = None
    # Some OpenAI-compatible servers send a list of typed content parts
    content: Union[str, List[Dict[str, Any]], None] = None


class OpenAIChoice(_VendorModel):
    message: Optional[OpenAIChoiceMessage] = None
    finish_reason: Optional[str] = None


class OpenAIUsage(_VendorModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


class OpenAIResponse(_VendorModel):
    model: Optional[str] = None
    choices: List[OpenAIChoice] = []


class GooglePart(_VendorModel):
    text: Optional[str] = None


class GoogleContent(_VendorModel):
    role: Optional[str] = None
    parts: List[GooglePart] = []


class GoogleCandidate(_VendorModel):
    content: Optional[GoogleContent] = None
    finishReason: Optional[str] = None


class GoogleUsage(_VendorModel):
    promptTokenCount: Optional[int] = None
    candidatesTokenCount: Optional[int] = None


class GoogleResponse(_VendorModel):
    modelVersion: Optional[str] = None
    candidates: List[GoogleCandidate] = []


class GenericResponse(_VendorModel):
    model: Optional[str] = None
    content: Optional[str] = None
    text: Optional[str] = None


@dataclass
class ParsedResponse:
    """Fields extracted from a vendor response before normalization."""

    content: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    raw_finish_reason: Optional[str] = None
    model: Optional[str] = None


def _count(value: Optional[int]) -> int:
    """Coerce a vendor token count to a non-negative int (missing -> 0)."""
    if not value or value < 0:
        return 0
    return int(value)


# =============================================================================
# Normalizers
# =============================================================================


class VendorNormalizer(ABC):
    """Bidirectional translation for one wire-format family."""

    kind: ProviderKind
    default_model: str = ""
    # Vendor finish reason -> normalized finish reason
    finish_reason_map: Dict[str, str] = {}

    def resolve_model(self, request: CompletionRequest, model: Optional[str] = None) -> str:
        return model or request.model or self.default_model

    @abstractmethod
    def to_vendor_request(
        self, request: CompletionRequest, model: Optional[str] = None
    ) -> Dict[str, Any]:
        """Convert a uniform request to the vendor payload."""

    @abstractmethod
    def _extract_content(self, raw: Dict[str, Any]) -> ParsedResponse:
        """Extract content, finish reason and model. May raise ValidationError."""

    def _extract_usage(self, raw: Dict[str, Any]) -> Tuple[int, int]:
        """Extract (input_tokens, output_tokens). May raise ValidationError."""
        return 0, 0

    def parse_response(self, raw: Any) -> ParsedResponse:
        """Parse a vendor response.

        Content and usage are validated independently, so a response whose
        content is unparseable still reports the tokens the vendor counted.
        """
        if not isinstance(raw, dict):
            logger.warning(
                "Unparseable %s response of type %s", self.kind.value, type(raw).__name__
            )
            return ParsedResponse()

        try:
            parsed = self._extract_content(raw)
        except ValidationError as e:
            logger.warning(
                "Unparseable %s response content: %d validation error(s)",
                self.kind.value,
                e.error_count(),
            )
            parsed = ParsedResponse()

        try:
            parsed.input_tokens, parsed.output_tokens = self._extract_usage(raw)
        except ValidationError as e:
            logger.warning(
                "Unparseable %s usage: %d validation error(s)",
                self.kind.value,
                e.error_count(),
            )
        return parsed

    def normalize_finish_reason(self, raw_reason: Optional[str]) -> str:
        if raw_reason is None:
            return FINISH_UNKNOWN
        return self.finish_reason_map.get(raw_reason, FINISH_UNKNOWN)

    def to_response(
        self,
        raw: Any,
        provider: str,
        requested_model: Optional[str] = None,
    ) -> CompletionResponse:
        """Convert a vendor response to a CompletionResponse."""
        parsed = self.parse_response(raw)
        return CompletionResponse(
            content=parsed.content,
            model=parsed.model or requested_model or self.default_model,
            provider=provider,
            usage=UsageInfo(
                input_tokens=parsed.input_tokens,
                output_tokens=parsed.output_tokens,
            ),
            finish_reason=self.normalize_finish_reason(parsed.raw_finish_reason),
            raw_finish_reason=parsed.raw_finish_reason,
        )


def _plain_messages(messages: List[Message]) -> List[Dict[str, str]]:
    return [{"role": m.role, "content": m.content} for m in messages]


class AnthropicNormalizer(VendorNormalizer):
    kind = ProviderKind.ANTHROPIC
    default_model = "claude-sonnet-4"
    finish_reason_map = {
        "end_turn": FINISH_COMPLETE,
        "stop_sequence": FINISH_COMPLETE,
        "max_tokens": FINISH_LENGTH,
        "tool_use": FINISH_TOOL_USE,
        "refusal": FINISH_ERROR,
    }

    def to_vendor_request(
        self, request: CompletionRequest, model: Optional[str] = None
    ) -> Dict[str, Any]:
        # The Messages API rejects a "system" role inside messages, so any
        # in-history system turns join the dedicated system field.
        system_parts = [request.system_prompt] if request.system_prompt else []
        messages = []
        for msg in request.messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            else:
                messages.append({"role": msg.role, "content": msg.content})

        payload: Dict[str, Any] = {
            "model": self.resolve_model(request, model),
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if request.tools:
            payload["tools"] = request.tools
        return payload

    def _extract_content(self, raw: Dict[str, Any]) -> ParsedResponse:
        data = AnthropicResponse.model_validate(raw)
        content = next(
            (block.text for block in data.content if block.type == "text" and block.text),
            "",
        )
        return ParsedResponse(content=content, raw_finish_reason=data.stop_reason, model=data.model)

    def _extract_usage(self, raw: Dict[str, Any]) -> Tuple[int, int]:
        usage = AnthropicUsage.model_validate(raw.get("usage") or {})
        return _count(usage.input_tokens), _count(usage.output_tokens)


class OpenAINormalizer(VendorNormalizer):
    kind = ProviderKind.OPENAI
    default_model = "gpt-4"
    finish_reason_map = {
        "stop": FINISH_COMPLETE,
        "length": FINISH_LENGTH,
        "tool_calls": FINISH_TOOL_USE,
        "function_call": FINISH_TOOL_USE,
        "content_filter": FINISH_ERROR,
    }

    def to_vendor_request(
        self, request: CompletionRequest, model: Optional[str] = None
    ) -> Dict[str, Any]:
        messages = _plain_messages(request.messages)
        if request.system_prompt:
            messages.insert(0, {"role": "system", "content": request.system_prompt})

        payload: Dict[str, Any] = {
            "model": self.resolve_model(request, model),
            "messages": messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.tools:
            payload["tools"] = request.tools
        return payload

    def _extract_content(self, raw: Dict[str, Any]) -> ParsedResponse:
        data = OpenAIResponse.model_validate(raw)
        choice = data.choices[0] if data.choices else OpenAIChoice()
        content = choice.message.content if choice.message else None
        if isinstance(content, list):
            content = "".join(
                part["text"] for part in content if isinstance(part.get("text"), str)
            )
        return ParsedResponse(
            content=content or "",
            raw_finish_reason=choice.finish_reason,
            model=data.model,
        )

    def _extract_usage(self, raw: Dict[str, Any]) -> Tuple[int, int]:
        usage = OpenAIUsage.model_validate(raw.get("usage") or {})
        return _count(usage.prompt_tokens), _count(usage.completion_tokens)


class GoogleNormalizer(VendorNormalizer):
    kind = ProviderKind.GOOGLE
    default_model = "gemini-pro"
    role_map = {"user": "user", "assistant": "model", "system": "user"}
    finish_reason_map = {
        "STOP": FINISH_COMPLETE,
        "MAX_TOKENS": FINISH_LENGTH,
        "SAFETY": FINISH_ERROR,
        "RECITATION": FINISH_ERROR,
        "BLOCKLIST": FINISH_ERROR,
        "PROHIBITED_CONTENT": FINISH_ERROR,
        "MALFORMED_FUNCTION_CALL": FINISH_ERROR,
        "OTHER": FINISH_UNKNOWN,
    }

    def to_vendor_request(
        self, request: CompletionRequest, model: Optional[str] = None
    ) -> Dict[str, Any]:
        contents = [
            {"role": self.role_map.get(msg.role, msg.role), "parts": [{"text": msg.content}]}
            for msg in request.messages
        ]

        if request.system_prompt:
            if contents and contents[0]["role"] == "user":
                first_text = contents[0]["parts"][0]["text"]
                contents[0]["parts"] = [{"text": f"{request.system_prompt}\n\n{first_text}"}]
            else:
                contents.insert(0, {"role": "user", "parts": [{"text": request.system_prompt}]})

        payload: Dict[str, Any] = {
            "model": self.resolve_model(request, model),
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": request.temperature,
            },
        }
        if request.tools:
            payload["tools"] = [{"functionDeclarations": request.tools}]
        return payload

    def _extract_content(self, raw: Dict[str, Any]) -> ParsedResponse:
        # A blocked prompt has no candidates, only promptFeedback and usage
        data = GoogleResponse.model_validate(raw)
        content = ""
        finish_reason = None
        if data.candidates:
            candidate = data.candidates[0]
            finish_reason = candidate.finishReason
            if candidate.content and candidate.content.parts:
                content = candidate.content.parts[0].text or ""
        return ParsedResponse(
            content=content,
            raw_finish_reason=finish_reason,
            model=data.modelVersion,
        )

    def _extract_usage(self, raw: Dict[str, Any]) -> Tuple[int, int]:
        usage = GoogleUsage.model_validate(raw.get("usageMetadata") or {})
        return _count(usage.promptTokenCount), _count(usage.candidatesTokenCount)


class GenericNormalizer(VendorNormalizer):
    """Fallback for adapters of unknown kind."""

    kind = ProviderKind.GENERIC

    def to_vendor_request(
        self, request: CompletionRequest, model: Optional[str] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.resolve_model(request, model) or None,
            "messages": _plain_messages(request.messages),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        return payload

    def _extract_content(self, raw: Dict[str, Any]) -> ParsedResponse:
        data = GenericResponse.model_validate(raw)
        return ParsedResponse(content=data.content or data.text or "", model=data.model)

    def normalize_finish_reason(self, raw_reason: Optional[str]) -> str:
        return FINISH_UNKNOWN


NORMALIZERS: Dict[ProviderKind, VendorNormalizer] = {
    ProviderKind.ANTHROPIC: AnthropicNormalizer(),
    ProviderKind.OPENAI: OpenAINormalizer(),
    ProviderKind.GOOGLE: GoogleNormalizer(),
    ProviderKind.GENERIC: GenericNormalizer(),
}


def get_normalizer(kind: Any) -> VendorNormalizer:
    """Return the normalizer for a provider kind.

    Accepts a ProviderKind or its string value. Unrecognized kinds get the
    generic normalizer.
    """
    try:
        return NORMALIZERS[ProviderKind(kind)]
    except ValueError:
        return NORMALIZERS[ProviderKind.GENERIC]
