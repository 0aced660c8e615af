"""Tests for the HTTP vendor adapters.

Uses httpx.MockTransport so no request leaves the process.
"""

import json

import httpx
import pytest

from llm_scaffold.gateway.errors import (
    AdapterFailure,
    AuthenticationError,
    ProviderHTTPError,
    ProviderTimeoutError,
    RateLimitError,
)
from llm_scaffold.gateway.providers import (
    ANTHROPIC_API_VERSION,
    AnthropicProvider,
    GoogleProvider,
    LocalProvider,
    OpenAIProvider,
)


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code=200, json_body=None, headers=None, text=None):
        self.status_code = status_code
        self.json_body = json_body if json_body is not None else {"ok": True}
        self.headers = headers or {}
        self.text = text
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text, headers=self.headers)
        return httpx.Response(self.status_code, json=self.json_body, headers=self.headers)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestAvailability:
    """Test credential-based availability."""

    def test_without_key_is_unavailable(self):
        assert not AnthropicProvider(api_key=None).is_available()
        assert not OpenAIProvider(api_key="").is_available()

    def test_with_key_is_available(self):
        assert GoogleProvider(api_key="g-key").is_available()

    def test_name_defaults_to_kind(self):
        assert AnthropicProvider().name == "anthropic"
        assert LocalProvider().name == "local"

    def test_local_needs_no_key(self):
        assert LocalProvider().is_available()

    def test_configured_models_override_class_list(self):
        provider = OpenAIProvider(models=["gpt-4o"], default_model="gpt-4o")

        assert provider.supported_models == ["gpt-4o"]
        assert provider.default_model == "gpt-4o"
        assert OpenAIProvider.supported_models == ["gpt-4-turbo", "gpt-4", "gpt-3.5-turbo"]

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_network(self):
        recorder = Recorder()
        provider = AnthropicProvider(client=_client(recorder))

        with pytest.raises(AuthenticationError):
            await provider.complete({"model": "claude-sonnet-4", "messages": []})

        assert recorder.requests == []


class TestRequests:
    """Test what each adapter puts on the wire."""

    @pytest.mark.asyncio
    async def test_anthropic_headers(self):
        recorder = Recorder(json_body={"content": []})
        provider = AnthropicProvider(api_key="sk-ant", client=_client(recorder))

        result = await provider.complete({"model": "claude-sonnet-4", "messages": []})

        assert result == {"content": []}
        request = recorder.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == ANTHROPIC_API_VERSION
        assert json.loads(request.content)["model"] == "claude-sonnet-4"

    @pytest.mark.asyncio
    async def test_openai_bearer_auth(self):
        recorder = Recorder()
        provider = OpenAIProvider(api_key="sk-oa", client=_client(recorder))

        await provider.complete({"model": "gpt-4", "messages": []})

        request = recorder.requests[0]
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-oa"

    @pytest.mark.asyncio
    async def test_google_model_in_url_and_key_in_query(self):
        recorder = Recorder()
        provider = GoogleProvider(api_key="g-key", client=_client(recorder))

        await provider.complete({"model": "gemini-ultra", "contents": []})

        request = recorder.requests[0]
        assert request.url.path == "/v1beta/models/gemini-ultra:generateContent"
        assert request.url.params["key"] == "g-key"
        assert json.loads(request.content) == {"contents": []}

    @pytest.mark.asyncio
    async def test_local_uses_openai_path_under_base_url(self):
        recorder = Recorder()
        provider = LocalProvider(base_url="http://127.0.0.1:8080/", client=_client(recorder))

        await provider.complete({"model": "llama3.1", "messages": []})

        request = recorder.requests[0]
        assert str(request.url) == "http://127.0.0.1:8080/v1/chat/completions"
        assert "Authorization" not in request.headers


class TestErrorMapping:
    """Test HTTP and transport errors become AdapterFailure subclasses."""

    @pytest.mark.asyncio
    async def test_rate_limit_with_retry_after(self):
        provider = OpenAIProvider(
            api_key="k", client=_client(Recorder(status_code=429, headers={"Retry-After": "17"}))
        )

        with pytest.raises(RateLimitError) as exc_info:
            await provider.complete({"model": "gpt-4"})

        assert exc_info.value.retry_after == 17
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_rate_limit_default_retry_after(self):
        provider = OpenAIProvider(api_key="k", client=_client(Recorder(status_code=429)))

        with pytest.raises(RateLimitError) as exc_info:
            await provider.complete({"model": "gpt-4"})

        assert exc_info.value.retry_after == 60

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failure(self, status):
        provider = AnthropicProvider(api_key="bad", client=_client(Recorder(status_code=status)))

        with pytest.raises(AuthenticationError):
            await provider.complete({"model": "claude-sonnet-4"})

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = GoogleProvider(
            api_key="k", client=_client(Recorder(status_code=503, text="overloaded"))
        )

        with pytest.raises(ProviderHTTPError) as exc_info:
            await provider.complete({"model": "gemini-pro"})

        assert exc_info.value.status_code == 503
        assert "overloaded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = OpenAIProvider(api_key="k", timeout=5, client=_client(handler))

        with pytest.raises(ProviderTimeoutError):
            await provider.complete({"model": "gpt-4"})

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = LocalProvider(client=_client(handler))

        with pytest.raises(AdapterFailure) as exc_info:
            await provider.complete({"model": "llama3.1"})

        assert not isinstance(exc_info.value, ProviderTimeoutError)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        provider = OpenAIProvider(api_key="k", client=_client(Recorder(text="<html>")))

        with pytest.raises(AdapterFailure):
            await provider.complete({"model": "gpt-4"})
