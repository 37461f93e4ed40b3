"""Anthropic Messages API provider."""

from typing import Any

from grantflow.domain.models.ai_request import AIRequest, AIResponse
from grantflow.domain.providers.http_provider import HttpAIProvider

ANTHROPIC_VERSION = "2023-06-01"
WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search"}


class AnthropicProvider(HttpAIProvider):
    """Calls ``POST /v1/messages``.

    The request maps directly: ``system`` carries the system prompt, the
    user prompt is a single user message, and search enables the hosted
    web search tool. Only ``text`` content blocks are kept from the reply.
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    DEFAULT_API_KEY_ENV = "ANTHROPIC_API_KEY"
    DEFAULT_BASE_URL = "https://api.anthropic.com"

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        metadata = super().get_metadata()
        metadata.update(
            {
                "name": "anthropic",
                "description": "Anthropic Messages API over HTTPS",
                "supports_search": True,
            }
        )
        return metadata

    def build_payload(self, request: AIRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._model,
            "max_tokens": request.max_output_tokens,
            "messages": [{"role": "user", "content": request.user_prompt}],
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        if request.search_enabled:
            payload["tools"] = [WEB_SEARCH_TOOL]
        return payload

    def complete(self, request: AIRequest, timeout: float | None = None) -> AIResponse:
        data = self._post(
            f"{self._base_url}/v1/messages",
            self.build_payload(request),
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            timeout=timeout,
        )
        return self._read_response(data)

    @staticmethod
    def parse_response(data: dict[str, Any]) -> AIResponse:
        blocks = [
            block.get("text", "")
            for block in data.get("content") or []
            if block.get("type") == "text" and block.get("text")
        ]
        usage = data.get("usage") or {}
        return AIResponse(
            text_blocks=blocks,
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
        )
