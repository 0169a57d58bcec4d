"""
Exception hierarchy for contextindex.

All exceptions inherit from ContextIndexError and carry an optional
context dictionary with structured error details.
"""


class ContextIndexError(Exception):
    """
    Base exception for all contextindex errors.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize error.

        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ContextIndexError):
    """
    Validation errors.
    Raised when a caller passes invalid input. Not retryable.
    """

    pass


class EmptyInputError(ValidationError):
    """
    Raised when text to embed or search is empty or whitespace only.
    """

    pass


class DimensionMismatchError(ValidationError, ValueError):
    """
    Raised when two vectors of different lengths are compared.
    """

    pass


class ProviderError(ContextIndexError):
    """
    Embedding provider errors (timeouts, rate limits, malformed responses).
    Transient and retryable.
    """

    pass


class AuthError(ContextIndexError):
    """
    Raised when a content source cannot authenticate.
    """

    pass


class PersistenceError(ContextIndexError):
    """
    Base exception for storage write or read failures.
    """

    pass


class VectorStoreError(PersistenceError):
    """
    Vector store operation errors.
    Raised when vector database operations fail.
    """

    pass


class ExtractionError(ContextIndexError):
    """
    Raised when a memory or knowledge detector fails on its input.
    """

    pass


class ConfigurationError(ContextIndexError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
