"""Shared HTTP plumbing for JSON-over-HTTPS providers."""

import logging
import os
import warnings
from typing import Any

import httpx

from grantflow.domain.errors import ProviderError, ProviderErrorKind
from grantflow.domain.models.ai_request import AIResponse
from grantflow.domain.providers.ai_provider import AIProvider

logger = logging.getLogger(__name__)

# Status codes that signal a temporarily overloaded service
OVERLOADED_STATUSES = {503, 529}

DEFAULT_TIMEOUT = 120


class HttpAIProvider(AIProvider):
    """Base for providers reached with a single JSON POST.

    Subclasses supply the endpoint, headers, request body and response
    parsing. Error mapping to ``ProviderError`` kinds lives here so every
    adapter classifies failures identically.

    Configuration:
        - model: Model identifier
        - api_key_env: Environment variable holding the API key
        - base_url: API base URL
        - timeout: Default per-attempt timeout in seconds
    """

    DEFAULT_MODEL = ""
    DEFAULT_API_KEY_ENV = ""
    DEFAULT_BASE_URL = ""

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config or {}
        self._validate_config()

        self._model = self.config.get("model", self.DEFAULT_MODEL)
        self._api_key_env = self.config.get("api_key_env", self.DEFAULT_API_KEY_ENV)
        self._base_url = self.config.get("base_url", self.DEFAULT_BASE_URL).rstrip("/")
        self._timeout = self.config.get("timeout", DEFAULT_TIMEOUT)
        self._client = client or httpx.Client()

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        metadata = super().get_metadata()
        metadata.update(
            {
                "requires_config": True,
                "config_keys": ["model", "api_key_env", "base_url", "timeout"],
                "default_timeout": DEFAULT_TIMEOUT,
            }
        )
        return metadata

    def _validate_config(self) -> None:
        """Warn on unknown config keys and reject invalid values.

        Raises:
            ValueError: If config values are invalid
        """
        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown {type(self).__name__} config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        timeout = self.config.get("timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

    def validate(self) -> None:
        """Verify the API key is available.

        Raises:
            ProviderError: If the API key environment variable is unset
        """
        if not os.environ.get(self._api_key_env):
            raise ProviderError(
                f"No API key configured. Set the {self._api_key_env} environment variable."
            )

    @property
    def api_key(self) -> str:
        return os.environ.get(self._api_key_env, "")

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON body.

        Raises:
            ProviderError: On transport failure, non-2xx status or invalid JSON
        """
        logger.debug(f"POST {url} model={self._model}")
        try:
            response = self._client.post(
                url,
                json=payload,
                headers=headers,
                params=params,
                timeout=timeout or self._timeout,
            )
        except httpx.TransportError as e:
            raise ProviderError(
                f"Connection error: {e}", kind=ProviderErrorKind.TRANSPORT
            ) from e

        if response.is_error:
            raise self._status_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON in provider response: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise ProviderError(self._error_message(data, response.text))
        return data

    @staticmethod
    def parse_response(data: Any) -> AIResponse:
        raise NotImplementedError

    def _read_response(self, data: Any) -> AIResponse:
        """Parse a decoded 2xx body, mapping shape errors to ``ProviderError``.

        Raises:
            ProviderError: If the body does not have the provider's reply shape
        """
        try:
            return self.parse_response(data)
        except (AttributeError, TypeError, KeyError, IndexError, ValueError) as e:
            logger.debug(f"Unparseable provider body: {str(data)[:200]}")
            raise ProviderError(f"Unexpected provider response: {e}") from e

    def _status_error(self, response: httpx.Response) -> ProviderError:
        status = response.status_code
        message = self._error_message(self._safe_json(response), response.text)

        if status == 429:
            return ProviderError(
                message,
                kind=ProviderErrorKind.RATE_LIMITED,
                status_code=status,
                retry_after=_parse_retry_after(response.headers.get("retry-after")),
            )
        if status in OVERLOADED_STATUSES:
            return ProviderError(message, kind=ProviderErrorKind.OVERLOADED, status_code=status)
        return ProviderError(message, status_code=status)

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _error_message(data: Any, raw_text: str) -> str:
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                return error.get("message") or error.get("type") or raw_text[:200]
            if isinstance(error, str):
                return error
        return raw_text[:200] or "Unknown provider error"


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None
