"""
In-process ordered aggregate index.

Each owner has a sorted list of (type, importance, id) keys, so a count over
a type and an importance range is two binary searches. The key currently
indexed for each memory id is tracked separately, so a replace removes the
stored entry even when the caller's `old` snapshot is stale.
"""

from bisect import bisect_left, insort
from collections.abc import Iterable

from tiermem.core.aggregate.base import AggregateIndex
from tiermem.models import LongTermMemory, LongTermType

Key = tuple[str, float, str]


def _key(memory: LongTermMemory) -> Key:
    return (memory.memory_type.value, memory.current_importance, memory.id)


class OrderedAggregateIndex(AggregateIndex):
    def __init__(self):
        self._keys: dict[str, list[Key]] = {}
        self._entries: dict[str, tuple[str, Key]] = {}  # memory id -> (owner id, key)

    def __len__(self) -> int:
        return len(self._entries)

    def insert(self, memory: LongTermMemory) -> None:
        self._discard(memory.id)
        if not memory.is_active:
            return
        key = _key(memory)
        insort(self._keys.setdefault(memory.owner_id, []), key)
        self._entries[memory.id] = (memory.owner_id, key)

    def delete(self, memory: LongTermMemory) -> None:
        self._discard(memory.id)

    def replace(self, old: LongTermMemory, new: LongTermMemory) -> None:
        if old.id != new.id:
            self._discard(old.id)
        self.insert(new)

    def _discard(self, memory_id: str) -> None:
        entry = self._entries.pop(memory_id, None)
        if entry is None:
            return
        owner_id, key = entry
        keys = self._keys.get(owner_id, [])
        i = bisect_left(keys, key)
        if i < len(keys) and keys[i] == key:
            del keys[i]

    def _range(
        self,
        keys: list[Key],
        type_value: str,
        min_importance: float | None,
        max_importance: float | None,
    ) -> int:
        low = float("-inf") if min_importance is None else min_importance
        high = float("inf") if max_importance is None else max_importance
        return bisect_left(keys, (type_value, high, "")) - bisect_left(keys, (type_value, low, ""))

    def count(
        self,
        owner_id: str,
        memory_type: LongTermType | None = None,
        min_importance: float | None = None,
        max_importance: float | None = None,
    ) -> int:
        keys = self._keys.get(owner_id, [])
        if memory_type is None and min_importance is None and max_importance is None:
            return len(keys)

        types = [memory_type] if memory_type is not None else list(LongTermType)
        return sum(self._range(keys, t.value, min_importance, max_importance) for t in types)

    def rebuild(self, memories: Iterable[LongTermMemory]) -> None:
        self._keys = {}
        self._entries = {}
        for memory in memories:
            if memory.is_active:
                key = _key(memory)
                self._keys.setdefault(memory.owner_id, []).append(key)
                self._entries[memory.id] = (memory.owner_id, key)
        for keys in self._keys.values():
            keys.sort()
