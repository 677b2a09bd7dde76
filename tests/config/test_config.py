"""
Tests for configuration management.

Tests config loading from:
1. Environment variables
2. YAML files
3. Combined (env overrides YAML)
"""

import os

import pytest
import yaml

from tiermem.config import (
    BucketConfig,
    Config,
    DecayConfig,
    LLMConfig,
    SensoryConfig,
)


class TestConfigDefaults:
    """Test default configuration values."""

    def test_default_config_creation(self):
        """Test creating config with defaults."""
        config = Config()

        # LLM defaults
        assert config.llm.provider == "ollama"
        assert config.llm.model == "llama3.1:8b"
        assert config.llm.api_key is None
        assert config.llm.temperature == 0.0

        # Embedder defaults
        assert config.embedder.provider == "ollama"
        assert config.embedder.model == "nomic-embed-text"
        assert config.embedder.dimension is None  # Auto-detect

        # Storage and similarity
        assert config.storage.db_path == "data/tiermem.db"
        assert config.similarity.backend == "qdrant"
        assert config.qdrant.collection_prefix == "tiermem"

    def test_lifecycle_defaults(self):
        """Thresholds and budgets of the memory lifecycle."""
        config = Config()

        assert config.sensory.attention_threshold == 0.3
        assert config.short_term.expiry_hours == 4.0
        assert config.short_term.topic_similarity_threshold == 0.82
        assert config.short_term.promotion_min_importance == 0.6
        assert config.long_term.dedup_similarity_threshold == 0.95
        assert config.decay.decay_constant == 0.01
        assert config.decay.prune_threshold == 0.1
        assert config.reflection.min_occurrences == 3
        assert config.reflection.min_confidence == 0.7
        assert (
            config.retrieval.core_budget,
            config.retrieval.long_term_budget,
            config.retrieval.short_term_budget,
        ) == (400, 1200, 400)

    def test_rate_limit_defaults(self):
        limits = Config().rate_limits

        assert limits.extraction == BucketConfig(rate=30, period_seconds=60, capacity=10)
        assert limits.embedding == BucketConfig(rate=100, period_seconds=60, capacity=20)
        assert limits.llm_tokens == BucketConfig(rate=50000, period_seconds=3600, capacity=10000)

    def test_scheduler_defaults(self):
        scheduler = Config().scheduler

        assert scheduler.consolidation_interval_minutes == 15
        assert (scheduler.reflection_hour_utc, scheduler.reflection_minute_utc) == (3, 0)
        assert scheduler.pruning_day_of_week == "sun"
        assert scheduler.step_max_attempts == 3

    def test_llm_config_creation(self):
        """Test creating LLM config."""
        llm_config = LLMConfig(
            provider="openai",
            model="gpt-4o",
            api_key="sk-test",
            temperature=0.7,
        )

        assert llm_config.provider == "openai"
        assert llm_config.model == "gpt-4o"
        assert llm_config.api_key == "sk-test"
        assert llm_config.temperature == 0.7

    def test_section_overrides(self):
        config = Config(
            sensory=SensoryConfig(attention_threshold=0.5),
            decay=DecayConfig(batch_size=10),
        )

        assert config.sensory.attention_threshold == 0.5
        assert config.sensory.base_score == 0.4
        assert config.decay.batch_size == 10


class TestConfigFromEnv:
    """Test loading configuration from environment variables."""

    def test_from_env_basic(self, monkeypatch):
        """Test loading basic config from environment."""
        monkeypatch.setenv("TIERMEM_LLM_PROVIDER", "openai")
        monkeypatch.setenv("TIERMEM_LLM_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("TIERMEM_LLM_API_KEY", "sk-test-key")
        monkeypatch.setenv("TIERMEM_EMBEDDER_PROVIDER", "openai")
        monkeypatch.setenv("TIERMEM_EMBEDDER_MODEL", "text-embedding-3-small")
        monkeypatch.setenv("TIERMEM_DB_PATH", "/tmp/memories.db")

        config = Config.from_env()

        assert config.llm.provider == "openai"
        assert config.llm.model == "gpt-4o-mini"
        assert config.llm.api_key == "sk-test-key"
        assert config.embedder.provider == "openai"
        assert config.embedder.model == "text-embedding-3-small"
        assert config.storage.db_path == "/tmp/memories.db"

    def test_from_env_with_numbers(self, monkeypatch):
        """Test loading numeric values from environment."""
        monkeypatch.setenv("TIERMEM_LLM_TEMPERATURE", "0.7")
        monkeypatch.setenv("TIERMEM_LLM_MAX_TOKENS", "4000")
        monkeypatch.setenv("TIERMEM_EMBEDDER_DIMENSION", "1536")
        monkeypatch.setenv("TIERMEM_ATTENTION_THRESHOLD", "0.45")
        monkeypatch.setenv("TIERMEM_STM_EXPIRY_HOURS", "2")
        monkeypatch.setenv("TIERMEM_CONSOLIDATION_INTERVAL_MINUTES", "5")

        config = Config.from_env()

        assert config.llm.temperature == 0.7
        assert config.llm.max_tokens == 4000
        assert config.embedder.dimension == 1536
        assert config.sensory.attention_threshold == 0.45
        assert config.short_term.expiry_hours == 2.0
        assert config.scheduler.consolidation_interval_minutes == 5

    def test_from_env_with_booleans(self, monkeypatch):
        """Test loading boolean values from environment."""
        monkeypatch.setenv("TIERMEM_QDRANT_USE_GRPC", "false")
        monkeypatch.setenv("TIERMEM_SCHEDULER_ENABLED", "0")
        monkeypatch.setenv("TIERMEM_LOG_TO_FILE", "yes")

        config = Config.from_env()

        assert config.qdrant.use_grpc is False
        assert config.scheduler.enabled is False
        assert config.logging.log_to_file is True

    def test_empty_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("TIERMEM_LLM_MODEL", "")

        assert Config.from_env().llm.model == "llama3.1:8b"

    def test_from_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TIERMEM_SIMILARITY_BACKEND", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("TIERMEM_SIMILARITY_BACKEND=memory\n")

        try:
            config = Config.from_env(env_file=env_file)
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("TIERMEM_SIMILARITY_BACKEND", None)

        assert config.similarity.backend == "memory"


class TestConfigFromYaml:
    """Test loading configuration from YAML."""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "llm": {"provider": "openai", "model": "gpt-4o"},
                    "decay": {"prune_threshold": 0.2},
                    "rate_limits": {
                        "extraction": {"rate": 5, "period_seconds": 60, "capacity": 5}
                    },
                }
            )
        )

        config = Config.from_yaml(path)

        assert config.llm.model == "gpt-4o"
        assert config.decay.prune_threshold == 0.2
        assert config.rate_limits.extraction.capacity == 5
        assert config.rate_limits.embedding.capacity == 20

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "missing.yaml")

    def test_from_yaml_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert Config.from_yaml(path) == Config()


class TestConfigCombined:
    """Env vars take priority over YAML."""

    def test_yaml_used_without_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TIERMEM_LLM_MODEL", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"llm": {"model": "yaml-model"}}))

        config = Config.from_env_or_yaml(yaml_path=path)

        assert config.llm.model == "yaml-model"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERMEM_LLM_MODEL", "env-model")
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"llm": {"model": "yaml-model"}}))

        config = Config.from_env_or_yaml(yaml_path=path)

        assert config.llm.model == "env-model"

    def test_missing_yaml_falls_back_to_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERMEM_DEDUP_THRESHOLD", "0.9")

        config = Config.from_env_or_yaml(yaml_path=tmp_path / "missing.yaml")

        assert config.long_term.dedup_similarity_threshold == 0.9
