"""Deterministic test doubles and record builders shared across test modules."""

import hashlib
from datetime import datetime
from typing import Any

import numpy as np

from tiermem.core.embeddings.base import Embedder
from tiermem.core.extraction.base import Extractor, PatternDetector
from tiermem.core.scheduler.base import TaskFunc, TaskScheduler
from tiermem.models import (
    DetectedPattern,
    ExtractionResult,
    LongTermMemory,
    LongTermType,
)
from tiermem.utils.exceptions import EmbeddingError, LLMError, SchedulerError

EMBEDDING_DIM = 64


def text_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Unit vector seeded by the text; unrelated texts are close to orthogonal."""
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
    vector = np.random.default_rng(seed).normal(size=dim)
    return (vector / np.linalg.norm(vector)).tolist()


def blend(a: list[float], b: list[float], weight: float) -> list[float]:
    """Unit vector `weight` of the way from `a` towards `b`."""
    mixed = (1 - weight) * np.asarray(a) + weight * np.asarray(b)
    return (mixed / np.linalg.norm(mixed)).tolist()


class FakeEmbedder(Embedder):
    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = vectors or {}
        self.calls: list[str] = []
        self.fail = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding backend unavailable")
        return self.vectors.get(text) or text_vector(text)


class FakeExtractor(Extractor):
    def __init__(self):
        self.results: dict[str, ExtractionResult] = {}
        self.default_importance = 0.7
        self.failures_remaining = 0
        self.calls: list[str] = []

    async def extract(self, text: str) -> ExtractionResult:
        self.calls.append(text)
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
            raise LLMError("model timed out")
        if text in self.results:
            return self.results[text]
        return ExtractionResult(importance=self.default_importance, summary=f"Summary: {text}")


class FakePatternDetector(PatternDetector):
    def __init__(self):
        self.patterns: list[DetectedPattern] = []
        self.calls: list[list[str]] = []
        self.failing_calls: set[int] = set()

    async def detect_patterns(self, summaries: list[str]) -> list[DetectedPattern]:
        self.calls.append(summaries)
        if len(self.calls) in self.failing_calls:
            raise LLMError("model timed out")
        return list(self.patterns)


class FakeTaskScheduler(TaskScheduler):
    """Records scheduled jobs; tests run them explicitly."""

    def __init__(self):
        self.tasks: dict[str, TaskFunc] = {}
        self.jobs: list[tuple[float, str, dict[str, Any]]] = []
        self.intervals: list[tuple[str, int]] = []
        self.crons: list[tuple[str, int, int, str | None]] = []
        self.started = False

    def register(self, name: str, func: TaskFunc) -> None:
        self.tasks[name] = func

    async def run_after(self, delay_seconds: float, name: str, **kwargs) -> str:
        if name not in self.tasks:
            raise SchedulerError(f"Task not registered: {name}")
        self.jobs.append((delay_seconds, name, kwargs))
        return f"{name}_{len(self.jobs)}"

    def add_interval(self, name: str, minutes: int) -> None:
        self.intervals.append((name, minutes))

    def add_cron(
        self, name: str, hour: int, minute: int = 0, day_of_week: str | None = None
    ) -> None:
        self.crons.append((name, hour, minute, day_of_week))

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False

    async def run_next(self) -> Any:
        _, name, kwargs = self.jobs.pop(0)
        return await self.tasks[name](**kwargs)

    async def drain(self, max_jobs: int = 100) -> int:
        """Run queued jobs (including ones they schedule) in FIFO order."""
        ran = 0
        while self.jobs and ran < max_jobs:
            await self.run_next()
            ran += 1
        return ran


def make_long_term(
    owner_id: str = "own_test",
    memory_id: str = "ltm_test",
    base_importance: float = 0.8,
    current_importance: float | None = None,
    stability: float = 100.0,
    last_accessed: datetime | None = None,
    **overrides,
) -> LongTermMemory:
    data = {
        "id": memory_id,
        "content": f"content of {memory_id}",
        "summary": f"summary of {memory_id}",
        "embedding": text_vector(memory_id),
        "memory_type": LongTermType.SEMANTIC,
        "base_importance": base_importance,
        "current_importance": current_importance or base_importance,
        "stability": stability,
        "last_accessed": last_accessed or datetime.now(),
        "owner_id": owner_id,
    }
    data.update(overrides)
    return LongTermMemory(**data)


