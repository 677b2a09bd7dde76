"""
Base interface for the owner-scoped aggregate index over long-term memory.

The index counts active long-term memories by owner, type and importance.
It is derived state: every write that changes a memory's importance, type
or active flag must be paired with `replace(old, new)` in the same step.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from tiermem.models import LongTermMemory, LongTermType


class AggregateIndex(ABC):
    @abstractmethod
    def insert(self, memory: LongTermMemory) -> None:
        """Add a memory. Inactive memories are ignored."""
        pass

    @abstractmethod
    def replace(self, old: LongTermMemory, new: LongTermMemory) -> None:
        """
        Swap the indexed entry for this memory with the entry for `new`.

        The entry removed is the one currently stored for the id, not the
        one derived from `old`, which may be a stale snapshot.
        """
        pass

    @abstractmethod
    def delete(self, memory: LongTermMemory) -> None:
        pass

    @abstractmethod
    def count(
        self,
        owner_id: str,
        memory_type: LongTermType | None = None,
        min_importance: float | None = None,
        max_importance: float | None = None,
    ) -> int:
        """
        Count active memories for an owner.

        Importance bounds are inclusive on the lower end and exclusive on the
        upper end.
        """
        pass

    @abstractmethod
    def rebuild(self, memories: Iterable[LongTermMemory]) -> None:
        """Discard all entries and reload from a full record scan."""
        pass
