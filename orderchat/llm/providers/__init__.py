"""Completion providers, keyed by the name stored on the restaurant"""

from typing import Callable, Dict, Optional

from orderchat.llm.providers.base import BaseLLMProvider
from orderchat.llm.providers.openai import OpenAIProvider
from orderchat.llm.providers.anthropic import AnthropicProvider
from orderchat.llm.providers.gemini import GeminiProvider
from orderchat.llm.providers.ollama import OllamaProvider

ProviderFactory = Callable[[Optional[str]], BaseLLMProvider]

PROVIDERS: Dict[str, ProviderFactory] = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
    OllamaProvider.name: OllamaProvider,
}

__all__ = [
    "BaseLLMProvider",
    "ProviderFactory",
    "PROVIDERS",
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "OllamaProvider",
]
