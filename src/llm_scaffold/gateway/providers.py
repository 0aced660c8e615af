"""Vendor adapters for the provider gateway.

Each adapter posts an already-normalized, vendor-shaped payload to the
vendor's HTTP API and returns the decoded JSON body unchanged. Any transport
problem or non-2xx status is raised as an AdapterFailure subclass so the
fallback controller can move on to the next provider.

Adapters:
- AnthropicProvider: Messages API
- OpenAIProvider: Chat Completions API
- GoogleProvider: Gemini generateContent API
- LocalProvider: OpenAI-compatible local server (e.g. Ollama)
"""

import logging
import time
from typing import Any, Dict, List, Optional, Type

import httpx

from .base import BaseProvider, ProviderKind
from .errors import (
    AdapterFailure,
    AuthenticationError,
    ProviderHTTPError,
    ProviderTimeoutError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


# Provider API endpoints
PROVIDER_ENDPOINTS = {
    "anthropic": "https://api.anthropic.com/v1/messages",
    "openai": "https://api.openai.com/v1/chat/completions",
    "google": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    "local": "http://localhost:11434",
}

ANTHROPIC_API_VERSION = "2023-06-01"
DEFAULT_RETRY_AFTER = 60


class HTTPProvider(BaseProvider):
    """Adapter that talks to a vendor over HTTP with httpx.

    Args:
        name: Registry key for the adapter.
        api_key: Vendor credential. Without one the adapter reports
            unavailable and every call raises AuthenticationError.
        default_model: Overrides the class default model.
        models: Overrides the class list of supported models.
        timeout: Per-request timeout in seconds.
        base_url: Overrides the vendor endpoint.
        client: Shared httpx.AsyncClient. When omitted a client is opened
            per request.
    """

    endpoint: str = ""

    def __init__(
        self,
        name: Optional[str] = None,
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        models: Optional[List[str]] = None,
        timeout: float = 120.0,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            name=name or self.kind.value,
            api_key=api_key,
            default_model=default_model,
            models=models,
            timeout=timeout,
        )
        if base_url:
            self.endpoint = base_url
        self._client = client

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _params(self) -> Dict[str, str]:
        return {}

    def _url(self, payload: Dict[str, Any]) -> str:
        return self.endpoint

    def _payload(self, vendor_request: Dict[str, Any]) -> Dict[str, Any]:
        return vendor_request

    def _require_key(self) -> None:
        if not self.is_available():
            raise AuthenticationError(
                f"No API key configured for {self.name}", provider=self.name
            )

    async def complete(self, vendor_request: Dict[str, Any]) -> Dict[str, Any]:
        self._require_key()
        url = self._url(vendor_request)
        payload = self._payload(vendor_request)

        start_time = time.time()
        try:
            if self._client is not None:
                response = await self._post(self._client, url, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, url, payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Timeout after {self.timeout}s", provider=self.name
            ) from e
        except httpx.HTTPError as e:
            raise AdapterFailure(f"Transport error: {e}", provider=self.name) from e

        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            "Provider %s answered %s in %dms", self.name, response.status_code, latency_ms
        )
        self._raise_for_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise AdapterFailure(
                f"Invalid JSON from {self.name}", provider=self.name
            ) from e

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: Dict[str, Any]
    ) -> httpx.Response:
        return await client.post(
            url,
            headers=self._headers(),
            params=self._params() or None,
            json=payload,
            timeout=self.timeout,
        )

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 429:
            retry_after = response.headers.get("Retry-After", str(DEFAULT_RETRY_AFTER))
            raise RateLimitError(
                "Rate limited",
                provider=self.name,
                retry_after=int(retry_after) if retry_after.isdigit() else DEFAULT_RETRY_AFTER,
            )

        if status in (401, 403):
            raise AuthenticationError(
                f"Authentication failed: {status}", provider=self.name
            )

        raise ProviderHTTPError(
            f"HTTP {status} from {self.name}: {response.text[:200]}",
            provider=self.name,
            status_code=status,
        )


class AnthropicProvider(HTTPProvider):
    """Anthropic Messages API adapter."""

    kind = ProviderKind.ANTHROPIC
    endpoint = PROVIDER_ENDPOINTS["anthropic"]
    default_model = "claude-sonnet-4"
    supported_models = ["claude-opus-4", "claude-sonnet-4", "claude-haiku-4"]

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_API_VERSION,
        }


class OpenAIProvider(HTTPProvider):
    """OpenAI Chat Completions adapter."""

    kind = ProviderKind.OPENAI
    endpoint = PROVIDER_ENDPOINTS["openai"]
    default_model = "gpt-4"
    supported_models = ["gpt-4-turbo", "gpt-4", "gpt-3.5-turbo"]

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }


class GoogleProvider(HTTPProvider):
    """Google Gemini generateContent adapter.

    The model is part of the URL, and the key is sent as a query parameter.
    """

    kind = ProviderKind.GOOGLE
    endpoint = PROVIDER_ENDPOINTS["google"]
    default_model = "gemini-pro"
    supported_models = ["gemini-ultra", "gemini-pro"]

    def _params(self) -> Dict[str, str]:
        return {"key": self.api_key or ""}

    def _url(self, payload: Dict[str, Any]) -> str:
        return self.endpoint.format(model=payload.get("model") or self.default_model)

    def _payload(self, vendor_request: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in vendor_request.items() if k != "model"}


class LocalProvider(HTTPProvider):
    """Local OpenAI-compatible server such as Ollama.

    No credential is needed; the adapter is available when a base URL is set.
    """

    kind = ProviderKind.OPENAI
    endpoint = PROVIDER_ENDPOINTS["local"]
    default_model = "llama3.1"
    supported_models = ["llama3.1", "mistral"]

    def __init__(self, name: Optional[str] = None, **kwargs: Any):
        super().__init__(name=name or "local", **kwargs)

    def is_available(self) -> bool:
        return bool(self.endpoint)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _url(self, payload: Dict[str, Any]) -> str:
        return f"{self.endpoint.rstrip('/')}/v1/chat/completions"

    def _require_key(self) -> None:
        if not self.is_available():
            raise AdapterFailure("No endpoint configured for local provider", provider=self.name)


PROVIDER_CLASSES: Dict[str, Type[HTTPProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google": GoogleProvider,
    "local": LocalProvider,
}
