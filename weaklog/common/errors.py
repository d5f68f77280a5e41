"""
Error taxonomy for Weaklog.

Provider errors carry a redacted ``user_message`` that is safe to show in a
notification. ``ParseError`` never leaves the analysis layer.
"""

from typing import Optional


class WeaklogError(Exception):
    """Base class for all Weaklog errors."""

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or message


# ============================================================================
# Configuration
# ============================================================================

class ConfigError(WeaklogError):
    """Missing or malformed credential, endpoint or setting."""


class UnknownProviderError(ConfigError):
    """Provider tag does not name a supported backend."""


# ============================================================================
# Provider / adapter
# ============================================================================

class ProviderError(WeaklogError):
    """Failure reported by (or while talking to) an LLM backend.

    ``attempts`` is how many calls were made before giving up.
    """

    retryable = False

    def __init__(self, message: str = "", user_message: Optional[str] = None, attempts: int = 1):
        super().__init__(message, user_message=user_message)
        self.attempts = attempts


class AuthError(ProviderError):
    """Backend rejected the credentials."""


class RateLimitError(ProviderError):
    retryable = True


class ProviderTimeoutError(ProviderError):
    """The call did not finish inside its hard timeout."""

    retryable = True


class QuotaError(ProviderError):
    """Billing quota exhausted."""


class SafetyBlockError(ProviderError):
    """Backend refused the content on safety grounds."""


class ModelNotFoundError(ProviderError):
    """Configured model is not available on the backend."""


class ConnectionFailedError(ProviderError):
    """Backend server could not be reached at all."""


class TransientProviderError(ProviderError):
    """Network or unclassified failure, worth another attempt."""

    retryable = True


class RetriesExhaustedError(ProviderError):
    """All attempts failed with retryable errors."""

    def __init__(self, message: str, attempts: int, last_error: Optional[ProviderError] = None,
                 user_message: Optional[str] = None):
        super().__init__(message, user_message=user_message, attempts=attempts)
        self.last_error = last_error


# ============================================================================
# Analysis
# ============================================================================

class ParseError(WeaklogError):
    """Model output could not be parsed or validated (internal only)."""


class EmptyInputError(WeaklogError, ValueError):
    """Content is empty or whitespace."""


class InvalidInputError(WeaklogError, ValueError):
    """Content or cooldown days outside the accepted range."""


# ============================================================================
# Storage
# ============================================================================

class StoreError(WeaklogError):
    """Entry store failure."""


class IdGenerationExhausted(StoreError):
    pass


class TransitionCollisionError(StoreError):
    """Destination stage already holds a document with the same identity."""


class RelocationError(StoreError):
    """Metadata was written but the document could not be moved.

    The entry is now inconsistent (status says one stage, location says
    another). Do not retry blindly.
    """

    def __init__(self, message: str, source: str = "", destination: str = "",
                 user_message: Optional[str] = None):
        super().__init__(message, user_message=user_message)
        self.source = source
        self.destination = destination


class ArchiveError(StoreError):
    pass


class SchedulerError(WeaklogError):
    """Cooldown index could not be persisted."""


class StageError(WeaklogError):
    """Command issued against a document outside its required stage."""
