from abc import ABC, abstractmethod
from typing import Any

from grantflow.domain.models.ai_request import AIRequest, AIResponse


class AIProvider(ABC):
    """Abstract interface for generative-text providers (Strategy pattern)."""

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata for discovery commands.

        Returns:
            dict with keys: name, description, requires_config, config_keys,
                           default_timeout, supports_search
        """
        return {
            "name": "unknown",
            "description": "No description available",
            "requires_config": False,
            "config_keys": [],
            "default_timeout": 120,  # seconds
            "supports_search": False,
        }

    @abstractmethod
    def validate(self) -> None:
        """Verify provider is configured correctly.

        Raises:
            ProviderError: If provider is misconfigured
        """
        ...

    @abstractmethod
    def complete(self, request: AIRequest, timeout: float | None = None) -> AIResponse:
        """Send one request to the provider.

        Exactly one network attempt is made; retrying is the gateway's job.

        Args:
            request: Provider-agnostic request
            timeout: Per-attempt timeout in seconds (None = provider default)

        Returns:
            Normalised response

        Raises:
            ProviderError: With a kind describing the failure status class
        """
        ...
