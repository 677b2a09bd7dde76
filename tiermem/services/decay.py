"""
Decay & Pruning Engine - the forgetting curve for long-term memory.

Decay follows Ebbinghaus: importance = base * e^(-(k / stability) * hours),
where hours counts from the last access. Higher stability decays slower.
Each pass handles one bounded batch; repeated passes rotate through the
whole population.
"""

import math
from datetime import datetime

from tiermem.config import DecayConfig
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.models import LongTermMemory
from tiermem.services.long_term import LongTermStore
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


def decayed_importance(
    base_importance: float,
    stability: float,
    hours_since_access: float,
    decay_constant: float = 0.01,
    floor: float = 0.01,
) -> float:
    """
    Forgetting-curve importance, never below `floor`.

    >>> round(decayed_importance(0.8, 100, 1000), 3)
    0.724
    """
    decay_rate = decay_constant / stability
    return max(floor, base_importance * math.exp(-decay_rate * hours_since_access))


class DecayEngine:
    def __init__(
        self,
        repository: MemoryRepository,
        long_term: LongTermStore,
        config: DecayConfig | None = None,
    ):
        self.repository = repository
        self.long_term = long_term
        self.config = config or DecayConfig()
        self._cursor: str | None = None

    def compute(self, memory: LongTermMemory, now: datetime | None = None) -> float:
        return decayed_importance(
            memory.base_importance,
            memory.stability,
            memory.hours_since_access(now),
            self.config.decay_constant,
            self.config.importance_floor,
        )

    async def apply_decay(self, now: datetime | None = None) -> int:
        """
        Decay one batch of active memories.

        Only changes larger than the noise threshold are written, each paired
        with its aggregate update.

        Returns:
            Number of memories whose importance was updated
        """
        now = now or datetime.now()
        batch = await self.repository.list_active_long_term_after(
            self._cursor, self.config.batch_size
        )
        # A short batch means the sweep reached the end; start over next time
        self._cursor = batch[-1].id if len(batch) == self.config.batch_size else None

        decayed = 0
        for memory in batch:
            new_importance = self.compute(memory, now)
            if abs(new_importance - memory.current_importance) <= self.config.noise_threshold:
                continue
            await self.long_term.commit_update(
                memory,
                memory.model_copy(
                    update={"current_importance": new_importance, "updated_at": now}
                ),
            )
            decayed += 1

        logger.info(f"Decay pass: {decayed} of {len(batch)} memories updated")
        return decayed

    async def prune(self) -> tuple[int, int]:
        """
        Soft-delete one batch of memories below the prune threshold.

        Returns:
            (processed, pruned)
        """
        candidates = await self.repository.list_prunable_long_term(
            self.config.prune_threshold, self.config.prune_batch_size
        )
        pruned = 0
        for memory in candidates:
            if await self.long_term.delete_memory(memory.id) is not None:
                pruned += 1

        logger.info(f"Pruned {pruned} low-importance long-term memories")
        return len(candidates), pruned
