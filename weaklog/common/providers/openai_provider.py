"""OpenAI GPT provider."""

from typing import List

import openai

from ..errors import (
    AuthError,
    ConfigError,
    ProviderError,
    RateLimitError,
    ProviderTimeoutError,
    QuotaError,
    ModelNotFoundError,
)
from ..llm_utils import redact_secrets
from .base import LLMProvider, CallOptions

# Reasoning models reject the temperature parameter
REASONING_PREFIXES = ("gpt-5", "o1", "o3", "o4")

# Only chat-capable families are offered in the model picker
CHAT_PREFIXES = ("gpt-", "o1", "o3", "o4")


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions via the official SDK."""

    name = "openai"
    STATIC_MODELS = [
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-4.1",
        "gpt-4.1-mini",
        "gpt-5",
        "gpt-5-mini",
    ]

    def __init__(self, api_key: str, model: str, **kwargs):
        super().__init__(model, **kwargs)
        self._api_key = api_key or ""

    @property
    def is_reasoning_model(self) -> bool:
        return self._model.lower().startswith(REASONING_PREFIXES)

    def _validate_config(self) -> None:
        if not self._api_key.strip():
            raise ConfigError("OpenAI API key is required",
                              user_message="OpenAI API key not configured. "
                                           "Set WEAKLOG_API_KEY or add it to your config.")

    def _create_client(self):
        try:
            return openai.OpenAI(api_key=self._api_key)
        except Exception as e:
            raise ConfigError(
                f"Failed to initialize OpenAI provider: {redact_secrets(str(e))}"
            ) from None

    def _complete(self, system: str, user: str, options: CallOptions, timeout_s: float) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        params = dict(
            model=self._model,
            max_completion_tokens=options.max_tokens,
            messages=messages,
            timeout=timeout_s,
        )
        if not self.is_reasoning_model:
            params["temperature"] = options.temperature

        response = self._client.chat.completions.create(**params)
        if response.choices:
            content = response.choices[0].message.content
            if content:
                return content.strip()
        raise ValueError("No text content in API response")

    def _classify(self, error: Exception) -> ProviderError:
        message = redact_secrets(str(error))
        lowered = message.lower()

        if "insufficient_quota" in lowered:
            return QuotaError(message, user_message="OpenAI quota exceeded. "
                                                    "Please check your billing settings.")
        if isinstance(error, openai.AuthenticationError) or "401" in message \
                or "incorrect api key" in lowered or "authentication" in lowered:
            return AuthError(message, user_message="Invalid API key. "
                                                   "Please check your OpenAI API key in settings.")
        if isinstance(error, openai.RateLimitError) or "429" in message \
                or "rate limit" in lowered:
            return RateLimitError(message, user_message="Rate limit exceeded. Please try again later.")
        if isinstance(error, openai.APITimeoutError) or "timeout" in lowered \
                or "timed out" in lowered:
            return ProviderTimeoutError(message, user_message="API request timed out. "
                                                              "Please check your connection and try again.")
        if isinstance(error, openai.NotFoundError) or "model_not_found" in lowered:
            return ModelNotFoundError(message, user_message=f'Model "{self._model}" is not available '
                                                            "for this OpenAI account.")
        return self._transient(error)

    def _fetch_models(self) -> List[str]:
        self.initialize()
        models = sorted(
            m.id for m in self._client.models.list()
            if m.id.startswith(CHAT_PREFIXES)
        )
        return models
