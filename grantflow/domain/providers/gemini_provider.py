"""Google Gemini ``generateContent`` provider."""

from typing import Any

from grantflow.domain.models.ai_request import AIRequest, AIResponse
from grantflow.domain.providers.http_provider import HttpAIProvider


class GeminiProvider(HttpAIProvider):
    """Calls ``POST /v1beta/models/<model>:generateContent``.

    Translation from the provider-agnostic request:
        - system prompt -> ``systemInstruction.parts``
        - user prompt -> ``contents`` with role ``user`` and a text part
        - search -> the ``google_search`` grounding tool
        - max output tokens -> ``generationConfig.maxOutputTokens``

    Text parts of the first candidate become the response blocks.
    """

    DEFAULT_MODEL = "gemini-2.0-flash"
    DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        metadata = super().get_metadata()
        metadata.update(
            {
                "name": "gemini",
                "description": "Google Gemini generateContent API over HTTPS",
                "supports_search": True,
            }
        )
        return metadata

    def build_payload(self, request: AIRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.user_prompt}]}],
            "generationConfig": {"maxOutputTokens": request.max_output_tokens},
        }
        if request.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}
        if request.search_enabled:
            payload["tools"] = [{"google_search": {}}]
        return payload

    def complete(self, request: AIRequest, timeout: float | None = None) -> AIResponse:
        data = self._post(
            f"{self._base_url}/v1beta/models/{self._model}:generateContent",
            self.build_payload(request),
            params={"key": self.api_key},
            timeout=timeout,
        )
        return self._read_response(data)

    @staticmethod
    def parse_response(data: dict[str, Any]) -> AIResponse:
        candidates = data.get("candidates") or []
        parts = (candidates[0].get("content") or {}).get("parts", []) if candidates else []
        usage = data.get("usageMetadata") or {}
        return AIResponse(
            text_blocks=[p["text"] for p in parts if p.get("text")],
            input_tokens=usage.get("promptTokenCount", 0),
            output_tokens=usage.get("candidatesTokenCount", 0),
        )
