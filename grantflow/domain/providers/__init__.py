from .ai_provider import AIProvider
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider
from .provider_factory import ProviderFactory

# Register built-in providers
ProviderFactory.register("anthropic", AnthropicProvider)
ProviderFactory.register("gemini", GeminiProvider)

__all__ = ["AIProvider", "AnthropicProvider", "GeminiProvider", "ProviderFactory"]
