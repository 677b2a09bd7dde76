"""
Unified Memory Engine - wires the memory lifecycle together.

Brings together:
- Sensory filter (attention gate)
- Short-term store (extraction, embedding, topics)
- Long-term store (consolidation, deduplication, reinforcement)
- Decay & pruning, fact graph
- Reflection & core promotion
- Retrieval assembly
- Consolidation scheduler (periodic workflows)
"""

from tiermem.config import Config
from tiermem.core.aggregate.base import AggregateIndex
from tiermem.core.aggregate.ordered import OrderedAggregateIndex
from tiermem.core.embeddings.base import Embedder
from tiermem.core.extraction.base import Extractor, PatternDetector
from tiermem.core.extraction.llm import LLMExtractor
from tiermem.core.factory import EmbedderFactory, LLMFactory, SimilarityIndexFactory
from tiermem.core.llm.base import LLMProvider
from tiermem.core.memory_store.base import MemoryRepository
from tiermem.core.memory_store.sqlite import SQLiteMemoryRepository
from tiermem.core.rate_limit.base import RateLimiter
from tiermem.core.rate_limit.token_bucket import TokenBucketRateLimiter
from tiermem.core.scheduler.apscheduler import APSchedulerTaskScheduler
from tiermem.core.scheduler.base import TaskScheduler
from tiermem.core.similarity.base import SimilarityIndex
from tiermem.core.tokenizer import Tokenizer
from tiermem.models import (
    ConnectedEdges,
    ConsolidationLogEntry,
    CoreCategory,
    CoreMemory,
    IngestionResult,
    InputType,
    LongTermMemory,
    MemoryContext,
    MemoryStatistics,
    Owner,
    ReflectionRun,
    SensoryRecord,
    ShortTermMemory,
)
from tiermem.services.consolidation import ConsolidationScheduler
from tiermem.services.core_memory import CoreMemoryStore
from tiermem.services.decay import DecayEngine
from tiermem.services.fact_graph import FactGraph
from tiermem.services.long_term import LongTermStore
from tiermem.services.owners import OwnerService
from tiermem.services.reflection import ReflectionEngine
from tiermem.services.retrieval import RetrievalAssembler
from tiermem.services.sensory_filter import SensoryFilter
from tiermem.services.short_term import ShortTermStore
from tiermem.services.tasks import EXTRACT_AND_EMBED, PROMOTE_FROM_SENSORY
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)


class MemoryEngine:
    """
    Unified Memory Engine integrating all components.

    Features:
    - Ingest raw input behind an attention gate
    - Background extraction, embedding and topic clustering
    - Consolidation into long-term memory with decay and pruning
    - Daily reflection promoting stable patterns to core memory
    - Token-budgeted context assembly
    """

    def __init__(
        self,
        repository: MemoryRepository,
        similarity: SimilarityIndex,
        embedder: Embedder,
        extractor: Extractor,
        detector: PatternDetector,
        task_scheduler: TaskScheduler,
        config: Config | None = None,
        aggregate: AggregateIndex | None = None,
        rate_limiter: RateLimiter | None = None,
        llm: LLMProvider | None = None,
    ):
        """
        Initialize Memory Engine.

        Args:
            repository: Durable record store
            similarity: Nearest-neighbour index for short- and long-term vectors
            embedder: Embedder (usually the caching decorator)
            extractor: Entity / relationship / importance extraction
            detector: Pattern detection over long-term summaries
            task_scheduler: Deferred and periodic task execution
            config: Configuration object
            aggregate: Per-owner ordered counts (defaults to in-process)
            rate_limiter: Token buckets (defaults to the configured buckets)
            llm: LLM provider owned by the engine, closed on shutdown
        """
        self.config = config or Config()
        self.repository = repository
        self.similarity = similarity
        self.embedder = embedder
        self.task_scheduler = task_scheduler
        self.aggregate = aggregate or OrderedAggregateIndex()
        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(
            {
                "extraction": self.config.rate_limits.extraction,
                "embedding": self.config.rate_limits.embedding,
                "llm_tokens": self.config.rate_limits.llm_tokens,
            }
        )
        self.llm = llm

        self.owners = OwnerService(repository)
        self.sensory = SensoryFilter(repository, task_scheduler, self.owners, self.config.sensory)
        self.fact_graph = FactGraph(
            repository, embedder, sweep_batch_size=self.config.decay.edge_sweep_batch_size
        )
        self.short_term = ShortTermStore(
            repository=repository,
            similarity=similarity,
            scheduler=task_scheduler,
            rate_limiter=self.rate_limiter,
            extractor=extractor,
            embedder=embedder,
            sensory=self.sensory,
            fact_graph=self.fact_graph,
            config=self.config.short_term,
        )
        self.long_term = LongTermStore(
            repository=repository,
            similarity=similarity,
            aggregate=self.aggregate,
            short_term=self.short_term,
            config=self.config.long_term,
        )
        self.decay = DecayEngine(repository, self.long_term, self.config.decay)
        self.core = CoreMemoryStore(
            repository,
            confidence_increment=self.config.reflection.confidence_increment,
            list_limit=self.config.retrieval.core_limit,
        )
        self.reflection = ReflectionEngine(
            repository=repository,
            long_term=self.long_term,
            core=self.core,
            owners=self.owners,
            detector=detector,
            embedder=embedder,
            rate_limiter=self.rate_limiter,
            config=self.config.reflection,
        )
        self.retrieval = RetrievalAssembler(
            core=self.core,
            long_term=self.long_term,
            short_term=self.short_term,
            embedder=embedder,
            tokenizer=Tokenizer(self.config.tokenizer),
            config=self.config.retrieval,
        )
        self.consolidation = ConsolidationScheduler(
            repository=repository,
            short_term=self.short_term,
            long_term=self.long_term,
            decay=self.decay,
            fact_graph=self.fact_graph,
            reflection=self.reflection,
            task_scheduler=task_scheduler,
            config=self.config.scheduler,
        )

        task_scheduler.register(PROMOTE_FROM_SENSORY, self.short_term.promote_from_sensory)
        task_scheduler.register(EXTRACT_AND_EMBED, self.short_term.extract_and_embed)
        self.consolidation.register()

    @classmethod
    def from_config(cls, config: Config) -> "MemoryEngine":
        """Build the engine and its adapters from configuration."""
        logger.info(
            f"Configuration: LLM={config.llm.provider}/{config.llm.model}, "
            f"Embedder={config.embedder.provider}/{config.embedder.model}, "
            f"Similarity={config.similarity.backend}"
        )
        llm = LLMFactory.create(config.llm)
        extractor = LLMExtractor(llm)
        return cls(
            repository=SQLiteMemoryRepository(config.storage.db_path),
            similarity=SimilarityIndexFactory.create(config),
            embedder=EmbedderFactory.create(config.embedder, config.embedding_cache),
            extractor=extractor,
            detector=extractor,
            task_scheduler=APSchedulerTaskScheduler(
                jobstore_path=config.scheduler.jobstore_path
            ),
            config=config,
            llm=llm,
        )

    async def initialize(self) -> None:
        """Initialize stores and rebuild the in-process aggregate index."""
        logger.info("Initializing Memory Engine")

        await self.repository.initialize()
        logger.info("Record repository initialized")

        await self.similarity.initialize()
        logger.info("Similarity index initialized")

        indexed = await self.long_term.rebuild_aggregate()
        logger.info(f"Aggregate index rebuilt with {indexed} memories")

        logger.info("Memory Engine ready")

    def start_scheduler(self, periodic: bool = True) -> None:
        """
        Start background execution.

        Pipeline jobs (promotion, extraction) always run; `periodic=False`
        leaves out the consolidation, reflection and pruning triggers.
        """
        if periodic:
            self.consolidation.start()
            logger.info("Consolidation scheduler started")
        else:
            self.task_scheduler.start()
            logger.info("Periodic workflows disabled, running pipeline tasks only")

    async def resume_pending(self) -> int:
        """Re-queue sensory records left pending or processing by a previous run."""
        return await self.sensory.resume_unfinished()

    # ═══════════════════════════════════════════════════════════
    # OWNERS & INGESTION
    # ═══════════════════════════════════════════════════════════

    async def get_or_create_owner(
        self, external_id: str, name: str | None = None, email: str | None = None
    ) -> Owner:
        return await self.owners.get_or_create_owner(external_id, name=name, email=email)

    async def get_owner(self, owner_id: str) -> Owner:
        return await self.owners.get_owner(owner_id)

    async def ingest(
        self,
        content: str,
        owner_id: str,
        thread_id: str | None = None,
        input_type: InputType = InputType.MESSAGE,
    ) -> IngestionResult:
        return await self.sensory.ingest(content, owner_id, thread_id, input_type)

    async def list_recent_sensory(self, owner_id: str) -> list[SensoryRecord]:
        await self.owners.get_owner(owner_id)
        return await self.sensory.list_recent(owner_id)

    # ═══════════════════════════════════════════════════════════
    # MEMORY TIERS
    # ═══════════════════════════════════════════════════════════

    async def list_short_term(self, owner_id: str) -> list[ShortTermMemory]:
        await self.owners.get_owner(owner_id)
        return await self.short_term.list_active(owner_id)

    async def short_term_by_thread(self, owner_id: str, thread_id: str) -> list[ShortTermMemory]:
        await self.owners.get_owner(owner_id)
        return await self.short_term.by_thread(owner_id, thread_id)

    async def list_long_term(self, owner_id: str) -> list[LongTermMemory]:
        await self.owners.get_owner(owner_id)
        return await self.long_term.list_active(owner_id)

    async def list_core(
        self, owner_id: str, category: CoreCategory | None = None
    ) -> list[CoreMemory]:
        await self.owners.get_owner(owner_id)
        if category is not None:
            return await self.core.by_category(owner_id, category)
        return await self.core.list_active(owner_id)

    async def remove_core(self, owner_id: str, memory_id: str) -> CoreMemory:
        return await self.core.remove(memory_id, owner_id)

    async def get_connected(self, owner_id: str, entity_name: str) -> ConnectedEdges:
        await self.owners.get_owner(owner_id)
        return await self.fact_graph.get_connected(owner_id, entity_name)

    async def get_statistics(self, owner_id: str) -> MemoryStatistics:
        await self.owners.get_owner(owner_id)
        return await self.long_term.statistics(owner_id)

    # ═══════════════════════════════════════════════════════════
    # RETRIEVAL
    # ═══════════════════════════════════════════════════════════

    async def assemble_context(
        self,
        owner_id: str,
        thread_id: str | None = None,
        query: str | None = None,
        query_embedding: list[float] | None = None,
    ) -> MemoryContext:
        """
        A precomputed `query_embedding` takes precedence over `query` text;
        with neither, the newest long-term memories are used.
        """
        await self.owners.get_owner(owner_id)
        if query_embedding:
            return await self.retrieval.assemble_context(owner_id, thread_id, query_embedding)
        if query:
            return await self.retrieval.assemble_for_text(owner_id, thread_id, query)
        return await self.retrieval.assemble_context_simple(owner_id, thread_id)

    def format_context(self, context: MemoryContext) -> str:
        return self.retrieval.format_context(context)

    # ═══════════════════════════════════════════════════════════
    # ADMIN TRIGGERS
    # ═══════════════════════════════════════════════════════════

    async def run_consolidation(self) -> ConsolidationLogEntry | None:
        return await self.consolidation.consolidation_workflow()

    async def run_reflection(self, owner_id: str | None = None) -> list[ReflectionRun] | None:
        return await self.consolidation.reflection_workflow(owner_id)

    async def run_pruning(self) -> ConsolidationLogEntry | None:
        return await self.consolidation.pruning_workflow()

    async def close(self) -> None:
        """Stop background work and close all connections."""
        logger.info("Closing Memory Engine")
        self.consolidation.shutdown()
        await self.similarity.close()
        await self.repository.close()
        await self.embedder.close()
        if self.llm is not None:
            await self.llm.close()
        logger.info("Memory Engine closed")
