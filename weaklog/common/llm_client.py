"""
Provider-agnostic LLM client for Weaklog.

Selects an adapter from a provider tag and exposes the same six operations
regardless of backend. The caller never branches on provider type.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from .config import ProviderConfig, DEFAULT_MODELS, DEFAULT_OLLAMA_ENDPOINT
from .errors import UnknownProviderError
from .providers import PROVIDERS, CallOptions, LLMProvider

logger = logging.getLogger("weaklog.common.llm_client")


class LLMClient:
    """Unified text generation client across LLM providers."""

    def __init__(self, provider: LLMProvider) -> None:
        self._provider = provider

    @classmethod
    def from_config(
        cls,
        config: ProviderConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "LLMClient":
        """Build the adapter named by ``config.provider_type``.

        Raises:
            UnknownProviderError: tag is not one of the supported providers
        """
        provider_type = (config.provider_type or "").lower()
        provider_cls = PROVIDERS.get(provider_type)
        if provider_cls is None:
            raise UnknownProviderError(
                f"Unsupported LLM provider: {config.provider_type}",
                user_message=f"Unsupported LLM provider: {config.provider_type}. "
                             f"Choose one of: {', '.join(PROVIDERS)}",
            )

        model = config.model or DEFAULT_MODELS[provider_type]
        if provider_type == "ollama":
            provider = provider_cls(endpoint=config.endpoint or DEFAULT_OLLAMA_ENDPOINT,
                                    model=model, sleep=sleep)
        else:
            provider = provider_cls(api_key=config.api_key or "", model=model, sleep=sleep)

        logger.debug("Created %s client (model: %s)", provider_type, model)
        return cls(provider)

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    def initialize(self) -> None:
        self._provider.initialize()

    def is_initialized(self) -> bool:
        return self._provider.is_initialized()

    def call_api(self, system: str, user: str, options: Optional[CallOptions] = None) -> str:
        return self._provider.call_api(system, user, options)

    def test_connection(self) -> bool:
        return self._provider.test_connection()

    def get_available_models(self) -> List[str]:
        return self._provider.get_available_models()

    def get_model(self) -> str:
        return self._provider.get_model()

    def set_model(self, model: str) -> None:
        self._provider.set_model(model)
