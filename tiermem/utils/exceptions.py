"""
Custom exception hierarchy for tiermem.

All exceptions inherit from TierMemError so callers can catch the whole
family in one place (the HTTP layer and the background pipeline do).
"""


class TierMemError(Exception):
    """
    Base exception for all tiermem errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize tiermem error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(TierMemError):
    """
    Base exception for store operations.
    Used for errors related to data storage operations.
    """

    pass


class RepositoryError(StoreError):
    """
    Record repository errors.
    Raised when the durable record store fails.
    """

    pass


class SimilarityIndexError(StoreError):
    """
    Similarity index errors.
    Raised when vector upserts or nearest-neighbour queries fail.
    """

    pass


class ValidationError(TierMemError):
    """
    Validation errors.
    Raised when input validation fails or data is invalid.
    """

    pass


class NotFoundError(TierMemError):
    """
    Resource not found errors.
    Also raised when a record exists but belongs to another owner.
    """

    pass


class ConfigurationError(TierMemError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class EmbeddingError(TierMemError):
    """
    Embedding generation errors.
    Raised when embedding generation fails.
    """

    pass


class LLMError(TierMemError):
    """
    LLM operation errors.
    Raised when LLM operations fail (API errors, timeouts, etc.).
    """

    pass


class RateLimitedError(TierMemError):
    """Raised when a token bucket has no capacity left."""

    def __init__(self, message: str, retry_after: float, context: dict | None = None):
        super().__init__(message, context)
        self.retry_after = retry_after


class SchedulerError(TierMemError):
    """
    Scheduler errors.
    Raised when a task cannot be registered or scheduled.
    """

    pass


class StepFailedError(TierMemError):
    """
    Workflow step errors.
    Raised when a workflow step still fails after its last retry.
    """

    pass
