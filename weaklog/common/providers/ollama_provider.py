"""Ollama (local server) provider over its HTTP API."""

from typing import List
from urllib.parse import urlparse

import httpx

from ..errors import (
    ConfigError,
    ConnectionFailedError,
    ModelNotFoundError,
    ProviderError,
    ProviderTimeoutError,
)
from ..llm_utils import redact_secrets
from .base import LLMProvider, CallOptions


class OllamaProvider(LLMProvider):
    """Local models served by Ollama. No credential; an endpoint instead."""

    name = "ollama"
    BASE_DELAY = 2.0  # local servers get more time between retries
    DEFAULT_TIMEOUT_MS = 60000
    STATIC_MODELS = [
        "llama2",
        "llama2:13b",
        "mistral",
        "mixtral",
        "codellama",
        "phi",
    ]

    def __init__(self, endpoint: str, model: str, **kwargs):
        super().__init__(model, **kwargs)
        self._endpoint = (endpoint or "").rstrip("/")

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _validate_config(self) -> None:
        if not self._endpoint:
            raise ConfigError("Ollama endpoint is required",
                              user_message="Ollama endpoint not configured.")
        parsed = urlparse(self._endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Invalid Ollama endpoint URL: {self._endpoint}",
                              user_message=f"Invalid Ollama endpoint URL: {self._endpoint}")

    def _create_client(self):
        return httpx.Client(base_url=self._endpoint)

    def _complete(self, system: str, user: str, options: CallOptions, timeout_s: float) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        response = self._client.post(
            "/api/chat",
            json={
                "model": self._model,
                "messages": messages,
                "stream": False,
                "options": {
                    "temperature": options.temperature,
                    "num_predict": options.max_tokens,
                },
            },
            timeout=timeout_s,
        )
        response.raise_for_status()
        data = response.json()
        content = (data.get("message") or {}).get("content")
        if not content:
            raise ValueError("No text content in API response")
        return content.strip()

    def _classify(self, error: Exception) -> ProviderError:
        message = redact_secrets(str(error))

        if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 404:
            return ModelNotFoundError(
                message,
                user_message=f'Model "{self._model}" not found. Pull it with: ollama pull {self._model}',
            )
        if isinstance(error, httpx.ConnectError):
            return ConnectionFailedError(
                message,
                user_message=f"Cannot connect to Ollama server at {self._endpoint}. Is Ollama running?",
            )
        if isinstance(error, httpx.TimeoutException):
            return ProviderTimeoutError(message, user_message="Ollama request timed out. "
                                                              "Large models may need more time.")
        return self._transient(error)

    def _list_tags(self) -> List[str]:
        response = self._client.get("/api/tags", timeout=10.0)
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", []) if m.get("name")]

    def _ping(self) -> None:
        names = self._list_tags()
        if not any(n == self._model or n.startswith(f"{self._model}:") for n in names):
            raise ModelNotFoundError(
                f"Model {self._model} not present on {self._endpoint}",
                user_message=f'Model "{self._model}" not found. Pull it with: ollama pull {self._model}',
            )

    def _fetch_models(self) -> List[str]:
        self.initialize()
        return self._list_tags()
