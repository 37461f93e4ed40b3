"""Tests for the Anthropic and Gemini HTTP adapters."""

import json

import httpx
import pytest

from grantflow.application.gateway import AIGatewayClient, is_ai_error
from grantflow.domain.errors import ProviderError, ProviderErrorKind
from grantflow.domain.models.ai_request import AIRequest
from grantflow.domain.providers.anthropic_provider import AnthropicProvider
from grantflow.domain.providers.gemini_provider import GeminiProvider


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _request(**overrides) -> AIRequest:
    fields = {
        "system_prompt": "You write grants.",
        "user_prompt": "Draft a proposal.",
        "search_enabled": False,
        "max_output_tokens": 3000,
    }
    fields.update(overrides)
    return AIRequest(**fields)


class TestAnthropicProvider:
    def test_sends_messages_payload(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "ok"}]})

        provider = AnthropicProvider({"model": "claude-test"}, client=_client(handler))
        provider.complete(_request(search_enabled=True))

        request = seen[0]
        body = json.loads(request.content)
        assert request.url == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert body == {
            "model": "claude-test",
            "max_tokens": 3000,
            "messages": [{"role": "user", "content": "Draft a proposal."}],
            "system": "You write grants.",
            "tools": [{"type": "web_search_20250305", "name": "web_search"}],
        }

    def test_omits_system_and_tools_when_unused(self) -> None:
        payload = AnthropicProvider().build_payload(_request(system_prompt=""))
        assert "system" not in payload
        assert "tools" not in payload

    def test_keeps_only_text_blocks(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "content": [
                        {"type": "server_tool_use", "name": "web_search"},
                        {"type": "text", "text": "First"},
                        {"type": "web_search_tool_result", "content": []},
                        {"type": "text", "text": "Second"},
                    ],
                    "usage": {"input_tokens": 1200, "output_tokens": 340},
                },
            )

        response = AnthropicProvider(client=_client(handler)).complete(_request())

        assert response.text == "First\n\nSecond"
        assert (response.input_tokens, response.output_tokens) == (1200, 340)

    def test_rate_limit_maps_to_rate_limited_with_retry_after(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                429,
                headers={"retry-after": "7"},
                json={"error": {"type": "rate_limit_error", "message": "Too many requests"}},
            )

        with pytest.raises(ProviderError) as exc_info:
            AnthropicProvider(client=_client(handler)).complete(_request())

        error = exc_info.value
        assert error.kind == ProviderErrorKind.RATE_LIMITED
        assert error.status_code == 429
        assert error.retry_after == 7.0
        assert error.transient

    def test_overloaded_status_maps_to_overloaded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(529, json={"error": {"type": "overloaded_error", "message": "Overloaded"}})

        with pytest.raises(ProviderError) as exc_info:
            AnthropicProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.OVERLOADED

    def test_bad_request_is_not_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"type": "invalid_request_error", "message": "max_tokens too large"}}
            )

        with pytest.raises(ProviderError) as exc_info:
            AnthropicProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.OTHER
        assert exc_info.value.message == "max_tokens too large"
        assert not exc_info.value.transient

    def test_connection_failure_maps_to_transport(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            AnthropicProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.TRANSPORT
        assert exc_info.value.message.startswith("Connection error")

    def test_validate_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        provider = AnthropicProvider()
        with pytest.raises(ProviderError, match="ANTHROPIC_API_KEY"):
            provider.validate()

        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        provider.validate()

    def test_unknown_config_keys_warn(self) -> None:
        with pytest.warns(UserWarning, match="temperature"):
            AnthropicProvider({"temperature": 0.2})

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            AnthropicProvider({"timeout": 0})


class TestGeminiProvider:
    def test_translates_request_schema(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "g-key")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "ok"}]}}]})

        provider = GeminiProvider(client=_client(handler))
        provider.complete(_request(search_enabled=True, max_output_tokens=2000))

        request = seen[0]
        body = json.loads(request.content)
        assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert request.url.params["key"] == "g-key"
        assert body == {
            "contents": [{"role": "user", "parts": [{"text": "Draft a proposal."}]}],
            "generationConfig": {"maxOutputTokens": 2000},
            "systemInstruction": {"parts": [{"text": "You write grants."}]},
            "tools": [{"google_search": {}}],
        }

    def test_extracts_text_parts_and_usage(self) -> None:
        data = {
            "candidates": [{"content": {"parts": [{"text": "Para one"}, {"text": ""}, {"text": "Para two"}]}}],
            "usageMetadata": {"promptTokenCount": 900, "candidatesTokenCount": 120},
        }

        response = GeminiProvider.parse_response(data)

        assert response.text == "Para one\n\nPara two"
        assert response.input_tokens == 900

    def test_no_candidates_gives_empty_response(self) -> None:
        assert GeminiProvider.parse_response({"candidates": []}).text == ""

    def test_service_unavailable_maps_to_overloaded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": {"code": 503, "message": "The model is overloaded."}})

        with pytest.raises(ProviderError) as exc_info:
            GeminiProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.OVERLOADED
        assert exc_info.value.message == "The model is overloaded."


class TestUnexpectedReplyShapes:
    @pytest.mark.parametrize(
        "body",
        [
            {"content": "plain string"},
            {"content": ["not a block"]},
            [{"type": "text", "text": "top-level list"}],
        ],
    )
    def test_anthropic_shape_error_becomes_provider_error(self, body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with pytest.raises(ProviderError, match="Unexpected provider response") as exc_info:
            AnthropicProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.OTHER
        assert not exc_info.value.transient

    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": ["not a candidate"]},
            {"candidates": [{"content": {"parts": "text"}}]},
            ["candidates"],
        ],
    )
    def test_gemini_shape_error_becomes_provider_error(self, body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with pytest.raises(ProviderError, match="Unexpected provider response") as exc_info:
            GeminiProvider(client=_client(handler)).complete(_request())

        assert exc_info.value.kind == ProviderErrorKind.OTHER

    def test_gateway_returns_error_string_for_malformed_reply(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"content": "plain string"})

        gateway = AIGatewayClient(AnthropicProvider(client=_client(handler)), sleep=lambda s: None)
        text = gateway.generate("System", "User")

        assert text.startswith("Error: Unexpected provider response")
        assert is_ai_error(text)
        assert len(calls) == 1
