"""Anthropic Claude provider."""

import anthropic

from ..errors import (
    AuthError,
    ConfigError,
    ProviderError,
    RateLimitError,
    ProviderTimeoutError,
    QuotaError,
)
from ..llm_utils import redact_secrets
from .base import LLMProvider, CallOptions


class AnthropicProvider(LLMProvider):
    """Anthropic Claude via the official SDK."""

    name = "anthropic"
    STATIC_MODELS = [
        "claude-sonnet-4-20250514",
        "claude-opus-4-20250514",
        "claude-3-7-sonnet-20250219",
        "claude-3-5-haiku-20241022",
        "claude-haiku-4-5-20251001",
    ]

    def __init__(self, api_key: str, model: str, **kwargs):
        super().__init__(model, **kwargs)
        self._api_key = api_key or ""

    def _validate_config(self) -> None:
        if not self._api_key.strip():
            raise ConfigError("Anthropic API key is required",
                              user_message="Anthropic API key not configured. "
                                           "Set WEAKLOG_API_KEY or add it to your config.")

    def _create_client(self):
        try:
            return anthropic.Anthropic(api_key=self._api_key)
        except Exception as e:
            raise ConfigError(
                f"Failed to initialize Anthropic provider: {redact_secrets(str(e))}"
            ) from None

    def _complete(self, system: str, user: str, options: CallOptions, timeout_s: float) -> str:
        kwargs = dict(
            model=self._model,
            max_tokens=options.max_tokens,
            temperature=options.temperature,
            messages=[{"role": "user", "content": user}],
            timeout=timeout_s,
        )
        if system:
            kwargs["system"] = system
        response = self._client.messages.create(**kwargs)

        for block in response.content or []:
            if getattr(block, "type", "text") == "text" and getattr(block, "text", None):
                return block.text.strip()
        raise ValueError("No text content in API response")

    def _classify(self, error: Exception) -> ProviderError:
        message = redact_secrets(str(error))
        lowered = message.lower()

        if isinstance(error, anthropic.AuthenticationError) or "401" in message \
                or "authentication" in lowered:
            return AuthError(message, user_message="Invalid API key. "
                                                   "Please check your Anthropic API key in settings.")
        if isinstance(error, anthropic.RateLimitError) or "429" in message \
                or "rate limit" in lowered or "rate_limit" in lowered:
            return RateLimitError(message, user_message="Rate limit exceeded. Please try again later.")
        if isinstance(error, anthropic.APITimeoutError) or "timeout" in lowered \
                or "timed out" in lowered:
            return ProviderTimeoutError(message, user_message="API request timed out. "
                                                              "Please check your connection and try again.")
        if "credit balance" in lowered or "billing" in lowered:
            return QuotaError(message, user_message="Anthropic credit balance exhausted. "
                                                    "Please check your billing settings.")
        return self._transient(error)
