"""
Configuration for tiermem.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "llama3.1:8b"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int = 2000
    timeout: float = 120.0


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension (fallback to auto-detect)
    dimension: int | None = None


class EmbeddingCacheConfig(BaseModel):
    """Exact-text embedding cache."""

    enabled: bool = True
    ttl_seconds: float = 7 * 24 * 3600
    max_entries: int = 10000


class StorageConfig(BaseModel):
    """Record repository configuration."""

    db_path: str = "data/tiermem.db"


class QdrantConfig(BaseModel):
    """Qdrant similarity index configuration."""

    url: str = "http://localhost:6333"
    collection_prefix: str = "tiermem"
    use_grpc: bool = True
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    use_quantization: bool = False
    on_disk: bool = False
    timeout: int = 30


class SimilarityConfig(BaseModel):
    """Similarity index backend selection."""

    backend: str = "qdrant"  # qdrant, memory


class TokenizerConfig(BaseModel):
    """Token estimation for context budgets."""

    provider: str = "approximate"  # approximate, tiktoken
    model: str = "cl100k_base"
    chars_per_token: float = 4.0


class SensoryConfig(BaseModel):
    """Attention scoring and gating."""

    attention_threshold: float = 0.3
    base_score: float = 0.4
    personal_weight: float = 0.25
    entity_weight_per_span: float = 0.05
    entity_weight_cap: float = 0.15
    temporal_weight: float = 0.1
    length_bonus: float = 0.15
    length_bonus_min_chars: int = 50
    short_penalty: float = 0.3
    short_penalty_max_chars: int = 20
    acknowledgement_penalty: float = 0.5
    duplicate_window_seconds: float = 3600.0
    resume_limit: int = 1000
    recent_limit: int = 50


class ShortTermConfig(BaseModel):
    """Short-term buffering, topic clustering and extraction retries."""

    expiry_hours: float = 4.0
    topic_similarity_threshold: float = 0.82
    topic_search_limit: int = 3
    max_extraction_retries: int = 3
    extraction_backoff_seconds: float = 1.0
    promotion_min_importance: float = 0.6
    promotion_batch_size: int = 50
    expiry_batch_size: int = 100
    thread_limit: int = 20
    active_limit: int = 50


class LongTermConfig(BaseModel):
    """Consolidation, deduplication and reinforcement."""

    dedup_similarity_threshold: float = 0.95
    dedup_search_limit: int = 3
    initial_stability: float = 100.0
    max_stability: float = 1000.0
    stability_increment: float = 10.0
    importance_increment: float = 0.05
    summary_fallback_chars: int = 200
    importance_floor: float = 0.01
    active_limit: int = 100
    # Statistics bands: low < low_importance_threshold <= medium < high_importance_threshold <= high
    low_importance_threshold: float = 0.3
    high_importance_threshold: float = 0.7


class DecayConfig(BaseModel):
    """Forgetting curve and pruning."""

    decay_constant: float = 0.01
    importance_floor: float = 0.01
    noise_threshold: float = 0.01
    batch_size: int = 500
    prune_threshold: float = 0.1
    prune_batch_size: int = 100
    edge_sweep_batch_size: int = 500


class ReflectionConfig(BaseModel):
    """Pattern detection and core promotion."""

    active_owner_days: int = 7
    owner_batch_size: int = 100
    min_importance: float = 0.7
    memory_batch_size: int = 100
    min_occurrences: int = 3
    min_confidence: float = 0.7
    confidence_increment: float = 0.05
    detection_token_cost: int = 1000


class RetrievalConfig(BaseModel):
    """Context assembly limits and token budgets."""

    core_limit: int = 10
    long_term_limit: int = 15
    long_term_fallback_limit: int = 10
    short_term_limit: int = 10
    core_budget: int = 400
    long_term_budget: int = 1200
    short_term_budget: int = 400
    track_access: bool = True


class BucketConfig(BaseModel):
    """One token bucket: `rate` tokens refill every `period_seconds`."""

    rate: float
    period_seconds: float
    capacity: float


class RateLimitConfig(BaseModel):
    """Token buckets for external calls."""

    extraction: BucketConfig = Field(
        default_factory=lambda: BucketConfig(rate=30, period_seconds=60, capacity=10)
    )
    embedding: BucketConfig = Field(
        default_factory=lambda: BucketConfig(rate=100, period_seconds=60, capacity=20)
    )
    llm_tokens: BucketConfig = Field(
        default_factory=lambda: BucketConfig(rate=50000, period_seconds=3600, capacity=10000)
    )


class SchedulerConfig(BaseModel):
    """Periodic workflow triggers and step retry policy."""

    enabled: bool = True
    # SQLite file for APScheduler jobs; None keeps jobs in memory only
    jobstore_path: str | None = "data/tiermem-jobs.db"
    consolidation_interval_minutes: int = 15
    reflection_hour_utc: int = 3
    reflection_minute_utc: int = 0
    pruning_day_of_week: str = "sun"
    pruning_hour_utc: int = 4
    pruning_minute_utc: int = 0
    step_max_attempts: int = 3
    step_initial_backoff_seconds: float = 1.0
    step_backoff_base: float = 2.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    embedding_cache: EmbeddingCacheConfig = Field(default_factory=EmbeddingCacheConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    sensory: SensoryConfig = Field(default_factory=SensoryConfig)
    short_term: ShortTermConfig = Field(default_factory=ShortTermConfig)
    long_term: LongTermConfig = Field(default_factory=LongTermConfig)
    decay: DecayConfig = Field(default_factory=DecayConfig)
    reflection: ReflectionConfig = Field(default_factory=ReflectionConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            TIERMEM_LLM_PROVIDER: LLM provider (ollama, openai)
            TIERMEM_LLM_MODEL: LLM model name
            TIERMEM_LLM_API_KEY: LLM API key (for OpenAI)
            TIERMEM_EMBEDDER_PROVIDER: Embedder provider
            TIERMEM_EMBEDDER_MODEL: Embedder model name
            TIERMEM_EMBEDDER_DIMENSION: Embedding dimension (optional)
            TIERMEM_DB_PATH: SQLite database path
            TIERMEM_SIMILARITY_BACKEND: qdrant or memory
            TIERMEM_QDRANT_URL: Qdrant URL
            TIERMEM_ATTENTION_THRESHOLD: Sensory gate threshold
            TIERMEM_STM_EXPIRY_HOURS: Short-term expiry
            TIERMEM_DEDUP_THRESHOLD: Long-term dedup similarity
            TIERMEM_SCHEDULER_ENABLED: Start periodic workflows
            TIERMEM_SCHEDULER_JOBSTORE_PATH: SQLite file persisting scheduled jobs
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            if value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        defaults = cls()

        return cls(
            llm=LLMConfig(
                provider=get_env("TIERMEM_LLM_PROVIDER", "ollama"),
                model=get_env("TIERMEM_LLM_MODEL", "llama3.1:8b"),
                base_url=get_env("TIERMEM_LLM_BASE_URL", "http://localhost:11434"),
                api_key=get_env("TIERMEM_LLM_API_KEY"),
                temperature=get_env("TIERMEM_LLM_TEMPERATURE", 0.0),
                max_tokens=get_env("TIERMEM_LLM_MAX_TOKENS", 2000),
                timeout=get_env("TIERMEM_LLM_TIMEOUT", 120.0),
            ),
            embedder=EmbedderConfig(
                provider=get_env("TIERMEM_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("TIERMEM_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("TIERMEM_EMBEDDER_BASE_URL", "http://localhost:11434"),
                api_key=get_env("TIERMEM_EMBEDDER_API_KEY"),
                timeout=get_env("TIERMEM_EMBEDDER_TIMEOUT", 120.0),
                dimension=get_env("TIERMEM_EMBEDDER_DIMENSION", 0) or None,
            ),
            embedding_cache=EmbeddingCacheConfig(
                enabled=get_env("TIERMEM_EMBEDDING_CACHE_ENABLED", True),
                ttl_seconds=get_env("TIERMEM_EMBEDDING_CACHE_TTL", 7 * 24 * 3600.0),
            ),
            storage=StorageConfig(
                db_path=get_env("TIERMEM_DB_PATH", "data/tiermem.db"),
            ),
            qdrant=QdrantConfig(
                url=get_env("TIERMEM_QDRANT_URL", "http://localhost:6333"),
                collection_prefix=get_env("TIERMEM_QDRANT_COLLECTION_PREFIX", "tiermem"),
                use_grpc=get_env("TIERMEM_QDRANT_USE_GRPC", True),
                hnsw_m=get_env("TIERMEM_QDRANT_HNSW_M", 16),
                hnsw_ef_construct=get_env("TIERMEM_QDRANT_HNSW_EF_CONSTRUCT", 100),
                use_quantization=get_env("TIERMEM_QDRANT_USE_QUANTIZATION", False),
                on_disk=get_env("TIERMEM_QDRANT_ON_DISK", False),
            ),
            similarity=SimilarityConfig(
                backend=get_env("TIERMEM_SIMILARITY_BACKEND", "qdrant"),
            ),
            tokenizer=TokenizerConfig(
                provider=get_env("TIERMEM_TOKENIZER_PROVIDER", "approximate"),
                chars_per_token=get_env("TIERMEM_CHARS_PER_TOKEN", 4.0),
            ),
            sensory=defaults.sensory.model_copy(
                update={
                    "attention_threshold": get_env("TIERMEM_ATTENTION_THRESHOLD", 0.3),
                }
            ),
            short_term=defaults.short_term.model_copy(
                update={
                    "expiry_hours": get_env("TIERMEM_STM_EXPIRY_HOURS", 4.0),
                    "topic_similarity_threshold": get_env("TIERMEM_TOPIC_THRESHOLD", 0.82),
                }
            ),
            long_term=defaults.long_term.model_copy(
                update={
                    "dedup_similarity_threshold": get_env("TIERMEM_DEDUP_THRESHOLD", 0.95),
                }
            ),
            scheduler=defaults.scheduler.model_copy(
                update={
                    "enabled": get_env("TIERMEM_SCHEDULER_ENABLED", True),
                    "jobstore_path": get_env(
                        "TIERMEM_SCHEDULER_JOBSTORE_PATH", defaults.scheduler.jobstore_path
                    ),
                    "consolidation_interval_minutes": get_env(
                        "TIERMEM_CONSOLIDATION_INTERVAL_MINUTES", 15
                    ),
                }
            ),
            logging=LoggingConfig(
                level=get_env("TIERMEM_LOG_LEVEL", "INFO"),
                log_to_file=get_env("TIERMEM_LOG_TO_FILE", True),
                log_dir=get_env("TIERMEM_LOG_DIR", "logs"),
                file_rotation=get_env("TIERMEM_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("TIERMEM_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("TIERMEM_LOG_COMPRESSION", "zip"),
                serialize=get_env("TIERMEM_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Only sections whose env-derived value differs from the defaults
        override the YAML section.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)
        default = cls()

        final_dict = {**config_dict}
        for section in cls.model_fields:
            env_value = getattr(env_config, section)
            if env_value != getattr(default, section):
                final_dict[section] = env_value.model_dump()

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
