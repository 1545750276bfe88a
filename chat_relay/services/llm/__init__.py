"""LLM provider factory."""

from enum import Enum

import httpx

from chat_relay.core.config import Settings, settings
from chat_relay.services.llm.base import BaseLLMProvider, UnsupportedProviderError


class ProviderName(str, Enum):
    OPENAI = "openai"


class ProviderRegistry:
    """Configured provider instances, keyed by the closed set of provider names."""

    def __init__(self) -> None:
        self._providers: dict[ProviderName, BaseLLMProvider] = {}

    def register(self, name: ProviderName, provider: BaseLLMProvider) -> None:
        self._providers[name] = provider

    def get(self, name: str) -> BaseLLMProvider:
        try:
            key = ProviderName(name)
        except ValueError:
            raise UnsupportedProviderError(f"Unsupported provider: {name}") from None
        provider = self._providers.get(key)
        if provider is None:
            raise UnsupportedProviderError(f"Unsupported provider: {name}")
        return provider


def create_default_registry(config: Settings | None = None) -> ProviderRegistry:
    """Registry with every provider configured from settings."""
    from chat_relay.services.llm.openai import OpenAIProvider

    config = config or settings
    registry = ProviderRegistry()
    registry.register(
        ProviderName.OPENAI,
        OpenAIProvider(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=httpx.Timeout(
                config.upstream_read_timeout,
                connect=config.upstream_connect_timeout,
            ),
        ),
    )
    return registry


_registry: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """FastAPI dependency returning the process-wide provider registry."""
    global _registry
    if _registry is None:
        _registry = create_default_registry()
    return _registry
