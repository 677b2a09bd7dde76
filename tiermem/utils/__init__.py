"""Utility modules for tiermem."""

from tiermem.utils.exceptions import (
    ConfigurationError,
    EmbeddingError,
    LLMError,
    NotFoundError,
    RateLimitedError,
    RepositoryError,
    SchedulerError,
    SimilarityIndexError,
    StepFailedError,
    StoreError,
    TierMemError,
    ValidationError,
)
from tiermem.utils.id_generator import (
    generate_core_id,
    generate_edge_id,
    generate_log_id,
    generate_long_term_id,
    generate_owner_id,
    generate_reflection_id,
    generate_sensory_id,
    generate_short_term_id,
    generate_topic_id,
)
from tiermem.utils.logger import get_logger, setup_logging
from tiermem.utils.retry import backoff_delay, retry_step

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Retry
    "backoff_delay",
    "retry_step",
    # ID Generators
    "generate_owner_id",
    "generate_sensory_id",
    "generate_topic_id",
    "generate_short_term_id",
    "generate_long_term_id",
    "generate_edge_id",
    "generate_core_id",
    "generate_log_id",
    "generate_reflection_id",
    # Exceptions
    "TierMemError",
    "StoreError",
    "RepositoryError",
    "SimilarityIndexError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "RateLimitedError",
    "SchedulerError",
    "StepFailedError",
]
