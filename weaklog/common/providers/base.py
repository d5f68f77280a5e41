"""
LLM provider contract and shared retry loop.

Every backend implements the same six operations. Subclasses supply the
backend-specific request, failure classification and model listing; the
attempt/backoff/timeout discipline lives here so it has exactly one shape:

- up to 3 attempts
- auth, quota, safety block, missing model, unreachable server: no retry
- rate limit: wait ``base * 2**attempt * 2``
- timeout and other transient failures: wait ``base * 2**(attempt - 1)``

Each attempt races the request against a hard timeout on a worker thread.
A request that loses the race keeps running in the background; its result
is discarded, never awaited.
"""

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..errors import (
    ProviderError,
    RateLimitError,
    ProviderTimeoutError,
    RetriesExhaustedError,
    TransientProviderError,
)
from ..llm_utils import redact_secrets


@dataclass
class CallOptions:
    """Per-call knobs for :meth:`LLMProvider.call_api`"""
    temperature: float = 0.5
    max_tokens: int = 1000
    timeout_ms: Optional[int] = None  # None = provider default


class LLMProvider(ABC):
    """Abstract base for LLM providers."""

    name: str = ""
    MAX_RETRIES = 3
    BASE_DELAY = 1.0  # seconds
    DEFAULT_TIMEOUT_MS = 30000
    STATIC_MODELS: List[str] = []

    def __init__(self, model: str, sleep: Callable[[float], None] = time.sleep):
        self._model = model
        self._sleep = sleep
        self._client = None
        self._initialized = False
        self.logger = logging.getLogger(f"weaklog.providers.{self.name}")

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _validate_config(self) -> None:
        """Raise ConfigError if the credential/endpoint is unusable."""

    @abstractmethod
    def _create_client(self):
        """Build the SDK/HTTP client. Called once by initialize()."""

    @abstractmethod
    def _complete(self, system: str, user: str, options: CallOptions, timeout_s: float) -> str:
        """One raw request. Return text or raise the backend's exception."""

    @abstractmethod
    def _classify(self, error: Exception) -> ProviderError:
        """Map a backend exception onto the shared taxonomy."""

    def _ping(self) -> None:
        """Minimal real request used by test_connection()."""
        self._complete("", "Test", CallOptions(temperature=0, max_tokens=10),
                       self.DEFAULT_TIMEOUT_MS / 1000)

    def _fetch_models(self) -> List[str]:
        return list(self.STATIC_MODELS)

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Validate configuration and build the client. Idempotent."""
        if self._initialized:
            return
        self._validate_config()
        self._client = self._create_client()
        self._initialized = True
        self.logger.info("%s provider initialized (model: %s)", self.name, self._model)

    def is_initialized(self) -> bool:
        return self._initialized

    def get_model(self) -> str:
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model
        self.logger.info("%s model updated to %s", self.name, model)

    def call_api(self, system: str, user: str, options: Optional[CallOptions] = None) -> str:
        """
        Perform one logical completion request with retry and backoff.

        Args:
            system: System prompt
            user: User message
            options: Temperature, max tokens, timeout

        Returns:
            Response text

        Raises:
            ProviderError subclass with a redacted ``user_message``
        """
        self.initialize()
        options = options or CallOptions()
        timeout_ms = options.timeout_ms or self.DEFAULT_TIMEOUT_MS

        last_error: Optional[ProviderError] = None
        for attempt in range(1, self.MAX_RETRIES + 1):
            self.logger.debug("%s API call attempt %d/%d", self.name, attempt, self.MAX_RETRIES)
            try:
                text = self._call_with_timeout(system, user, options, timeout_ms)
                self.logger.debug("%s API call successful", self.name)
                return text
            except ProviderError as e:
                error = e
            except Exception as e:
                error = self._classify(e)

            self.logger.warning(
                "%s API call attempt %d failed: %s", self.name, attempt, redact_secrets(str(error))
            )
            if not error.retryable:
                error.attempts = attempt
                raise error

            last_error = error
            if attempt == self.MAX_RETRIES:
                break

            delay = self._backoff(error, attempt)
            self.logger.info("%s waiting %.1fs before retry", self.name, delay)
            self._sleep(delay)

        raise self._exhausted(last_error)

    def test_connection(self) -> bool:
        """
        Make a minimal request to validate credentials/reachability.

        Returns True on success; never returns False, raises a
        ProviderError with a user-actionable message instead.
        """
        self.initialize()
        self.logger.info("Testing %s connection", self.name)
        try:
            self._ping()
        except ProviderError as e:
            self.logger.error("%s connection test failed: %s", self.name, redact_secrets(str(e)))
            raise
        except Exception as e:
            error = self._classify(e)
            self.logger.error("%s connection test failed: %s", self.name, redact_secrets(str(e)))
            if isinstance(error, TransientProviderError):
                raise TransientProviderError(
                    str(error), user_message=f"Connection test failed: {error.user_message}"
                ) from None
            raise error from None
        self.logger.info("%s connection test successful", self.name)
        return True

    def get_available_models(self) -> List[str]:
        """Live or static model list. Fetch failures fall back to the static list."""
        try:
            models = self._fetch_models()
            if models:
                return models
        except Exception as e:
            self.logger.warning(
                "Failed to fetch %s models: %s", self.name, redact_secrets(str(e))
            )
        return list(self.STATIC_MODELS)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call_with_timeout(self, system: str, user: str, options: CallOptions,
                           timeout_ms: int) -> str:
        """Race one request against a hard timeout."""
        timeout_s = timeout_ms / 1000
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"weaklog-{self.name}")
        future = executor.submit(self._complete, system, user, options, timeout_s)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeout:
            raise ProviderTimeoutError(
                f"API request timeout after {timeout_ms}ms",
                user_message="API request timed out. Please check your connection and try again.",
            ) from None
        finally:
            # Don't wait for a request that lost the race
            executor.shutdown(wait=False)

    def _backoff(self, error: ProviderError, attempt: int) -> float:
        if isinstance(error, RateLimitError):
            return self.BASE_DELAY * (2 ** attempt) * 2
        return self.BASE_DELAY * (2 ** (attempt - 1))

    def _exhausted(self, last_error: Optional[ProviderError]) -> ProviderError:
        n = self.MAX_RETRIES
        if isinstance(last_error, RateLimitError):
            return RateLimitError(
                f"Rate limit exceeded after {n} attempts",
                user_message="Rate limit exceeded. Please try again later.",
                attempts=n,
            )
        if isinstance(last_error, ProviderTimeoutError):
            return ProviderTimeoutError(
                f"API request timed out after {n} attempts",
                user_message=last_error.user_message,
                attempts=n,
            )
        detail = redact_secrets(str(last_error)) if last_error else "unknown error"
        return RetriesExhaustedError(
            f"API call failed after {n} attempts: {detail}",
            attempts=n,
            last_error=last_error,
        )

    def _transient(self, error: Exception) -> TransientProviderError:
        message = redact_secrets(str(error)) or type(error).__name__
        return TransientProviderError(message, user_message=f"{self.name} request failed: {message}")
