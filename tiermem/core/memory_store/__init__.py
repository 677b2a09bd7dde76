"""Durable record storage for all memory tiers."""

from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.memory_store.sqlite import SQLiteMemoryRepository

__all__ = [
    "MemoryRepository",
    "SQLiteMemoryRepository",
]
