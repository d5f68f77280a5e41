"""
LLM provider adapters.

One adapter per backend, all sharing the retry/timeout discipline in
:class:`LLMProvider`.
"""

from .base import LLMProvider, CallOptions
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .gemini_provider import GeminiProvider
from .ollama_provider import OllamaProvider

PROVIDERS = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}

__all__ = [
    "LLMProvider",
    "CallOptions",
    "AnthropicProvider",
    "OpenAIProvider",
    "GeminiProvider",
    "OllamaProvider",
    "PROVIDERS",
]
