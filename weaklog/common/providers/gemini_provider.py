"""Google Gemini provider."""

from typing import List

import google.generativeai as genai

from ..errors import (
    AuthError,
    ConfigError,
    ProviderError,
    RateLimitError,
    ProviderTimeoutError,
    QuotaError,
    SafetyBlockError,
)
from ..llm_utils import redact_secrets
from .base import LLMProvider, CallOptions


class GeminiProvider(LLMProvider):
    """Google Gemini via google-generativeai."""

    name = "gemini"
    STATIC_MODELS = [
        "gemini-2.0-flash",
        "gemini-2.5-flash",
        "gemini-2.5-pro",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
    ]

    def __init__(self, api_key: str, model: str, **kwargs):
        super().__init__(model, **kwargs)
        self._api_key = api_key or ""

    def _validate_config(self) -> None:
        if not self._api_key.strip():
            raise ConfigError("Gemini API key is required",
                              user_message="Gemini API key not configured. "
                                           "Set WEAKLOG_API_KEY or add it to your config.")

    def _create_client(self):
        try:
            genai.configure(api_key=self._api_key)
        except Exception as e:
            raise ConfigError(
                f"Failed to initialize Gemini provider: {redact_secrets(str(e))}"
            ) from None
        return genai  # Store the module, models are built per call

    def _complete(self, system: str, user: str, options: CallOptions, timeout_s: float) -> str:
        model = self._client.GenerativeModel(model_name=self._model)
        # Gemini has no separate system role here, prompts are combined
        prompt = f"{system}\n\n{user}" if system else user
        response = model.generate_content(
            prompt,
            generation_config={
                "temperature": options.temperature,
                "max_output_tokens": options.max_tokens,
            },
            request_options={"timeout": timeout_s},
        )

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise SafetyBlockError(
                f"Prompt blocked: {feedback.block_reason}",
                user_message="Content was blocked by Gemini safety filters. Please try different input.",
            )
        try:
            text = response.text
        except ValueError as e:
            # Raised when the only candidate was stopped for SAFETY
            raise SafetyBlockError(
                f"Response blocked: {e}",
                user_message="Content was blocked by Gemini safety filters. Please try different input.",
            ) from None
        if not text:
            raise ValueError("No text content in API response")
        return text.strip()

    def _classify(self, error: Exception) -> ProviderError:
        message = redact_secrets(str(error))
        lowered = message.lower()

        if "401" in message or "403" in message or "api_key_invalid" in lowered \
                or "api key not valid" in lowered or "permission denied" in lowered:
            return AuthError(message, user_message="Invalid API key. "
                                                   "Please check your Gemini API key in settings.")
        if "429" in message or "rate limit" in lowered:
            return RateLimitError(message, user_message="Rate limit exceeded. Please try again later.")
        if "timeout" in lowered or "timed out" in lowered or "deadline" in lowered:
            return ProviderTimeoutError(message, user_message="API request timed out. "
                                                              "Please check your connection and try again.")
        if "quota" in lowered:
            return QuotaError(message, user_message="Gemini quota exceeded. "
                                                    "Please check your billing settings.")
        if "safety" in lowered or "blocked" in lowered:
            return SafetyBlockError(message, user_message="Content was blocked by Gemini safety filters. "
                                                          "Please try different input.")
        return self._transient(error)

    def _fetch_models(self) -> List[str]:
        self.initialize()
        models = []
        for m in self._client.list_models():
            if "generateContent" in getattr(m, "supported_generation_methods", []):
                models.append(m.name.split("/", 1)[-1])
        return models
