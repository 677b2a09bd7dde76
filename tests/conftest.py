"""
Shared fixtures.

Tests run without network services:
- Real SQLite repository on a temp file
- In-process similarity index, aggregate index and token-bucket limiter
- Deterministic fake Embedder / Extractor / PatternDetector / TaskScheduler
"""

from collections.abc import AsyncGenerator

import pytest

from tiermem.config import (
    Config,
    LoggingConfig,
    SchedulerConfig,
    SimilarityConfig,
    StorageConfig,
)
from tiermem.core.memory_store.sqlite import SQLiteMemoryRepository
from tiermem.core.similarity.memory import InMemorySimilarityIndex
from tiermem.services.memory_engine import MemoryEngine

from tests.helpers import (
    FakeEmbedder,
    FakeExtractor,
    FakePatternDetector,
    FakeTaskScheduler,
)

# Fixtures


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        storage=StorageConfig(db_path=str(tmp_path / "tiermem.db")),
        similarity=SimilarityConfig(backend="memory"),
        scheduler=SchedulerConfig(step_initial_backoff_seconds=0.0),
        logging=LoggingConfig(log_to_file=False),
    )


@pytest.fixture
async def repository(config) -> AsyncGenerator[SQLiteMemoryRepository, None]:
    repo = SQLiteMemoryRepository(config.storage.db_path)
    await repo.initialize()
    yield repo
    await repo.close()


@pytest.fixture
def similarity() -> InMemorySimilarityIndex:
    return InMemorySimilarityIndex()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def detector() -> FakePatternDetector:
    return FakePatternDetector()


@pytest.fixture
def scheduler() -> FakeTaskScheduler:
    return FakeTaskScheduler()


@pytest.fixture
async def engine(
    repository, similarity, embedder, extractor, detector, scheduler, config
) -> AsyncGenerator[MemoryEngine, None]:
    memory_engine = MemoryEngine(
        repository=repository,
        similarity=similarity,
        embedder=embedder,
        extractor=extractor,
        detector=detector,
        task_scheduler=scheduler,
        config=config,
    )
    await memory_engine.initialize()
    yield memory_engine


@pytest.fixture
async def owner(engine):
    return await engine.get_or_create_owner("user-123", name="Ada")


@pytest.fixture
def ingest(engine, scheduler, owner):
    """Ingest content for the default owner and run the background pipeline."""

    async def _ingest(content: str, thread_id: str | None = "thread-1", owner_id: str | None = None):
        result = await engine.ingest(content, owner_id or owner.id, thread_id)
        await scheduler.drain()
        return result

    return _ingest
