from typing import Any

from .base import LLMProvider
from .providers import OpenAICompatibleProvider

POLLINATIONS_BASE_URL = "https://enter.pollinations.ai/api/generate/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create a completion provider instance.

    This factory function hides the instantiation logic for different endpoints.

    Args:
        provider: Provider type ('pollinations', 'openai')
        **config: Provider-specific configuration
            For Pollinations:
                - api_key: str | None (optional; requests are anonymous without it)
                - base_url: str (default: POLLINATIONS_BASE_URL)
                - timeout: float (default: 60.0)
            For OpenAI (or any OpenAI-compatible server):
                - api_key: str (required)
                - base_url: str (default: OPENAI_BASE_URL)
                - timeout: float (default: 60.0)

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> provider = create_llm_provider("pollinations")

        >>> provider = create_llm_provider(
        ...     "openai",
        ...     api_key="sk-...",
        ...     base_url="http://localhost:11434/v1"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "pollinations":
        config["base_url"] = config.get("base_url") or POLLINATIONS_BASE_URL
        return OpenAICompatibleProvider(**config)

    if provider_lower == "openai":
        if not config.get("api_key"):
            raise TypeError("OpenAI provider requires 'api_key' in config")
        config["base_url"] = config.get("base_url") or OPENAI_BASE_URL
        return OpenAICompatibleProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'pollinations', 'openai'"
    )
