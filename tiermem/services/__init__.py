"""
Services for tiermem.

The memory lifecycle, one service per stage:
- SensoryFilter: Attention gate and duplicate suppression
- ShortTermStore: Extraction, embedding and topic clustering
- LongTermStore: Consolidation, deduplication and reinforcement
- DecayEngine: Forgetting curve and pruning
- FactGraph: Entity relationship edges
- ReflectionEngine / CoreMemoryStore: Pattern detection and core memory
- RetrievalAssembler: Token-budgeted context assembly
- ConsolidationScheduler: Periodic background workflows
- MemoryEngine: Unified interface for all memory operations
"""

from tiermem.services.consolidation import ConsolidationScheduler
from tiermem.services.core_memory import CoreMemoryStore
from tiermem.services.decay import DecayEngine
from tiermem.services.fact_graph import FactGraph
from tiermem.services.long_term import LongTermStore
from tiermem.services.memory_engine import MemoryEngine
from tiermem.services.owners import OwnerService
from tiermem.services.reflection import ReflectionEngine
from tiermem.services.retrieval import RetrievalAssembler
from tiermem.services.sensory_filter import SensoryFilter
from tiermem.services.short_term import ShortTermStore

__all__ = [
    "MemoryEngine",
    "OwnerService",
    "SensoryFilter",
    "ShortTermStore",
    "LongTermStore",
    "DecayEngine",
    "FactGraph",
    "CoreMemoryStore",
    "ReflectionEngine",
    "RetrievalAssembler",
    "ConsolidationScheduler",
]
