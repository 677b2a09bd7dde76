"""
Retrieval Assembler - budgeted context for the response generator.

Core, long-term and short-term memories are fetched independently and each
packed greedily, in source order, into its own token budget. Packing stops
at the first item that would overflow; items are never reordered or cut.
"""

from collections.abc import Callable
from typing import TypeVar

from tiermem.config import RetrievalConfig
from tiermem.core.embeddings.base import Embedder
from tiermem.core.tokenizer.tokenizer import Tokenizer
from tiermem.models import (
    CoreContextItem,
    CoreMemory,
    LongTermContextItem,
    LongTermMemory,
    MemoryContext,
    ShortTermContextItem,
    ShortTermMemory,
)
from tiermem.services.core_memory import CoreMemoryStore
from tiermem.services.long_term import LongTermStore
from tiermem.services.short_term import ShortTermStore
from tiermem.utils.exceptions import TierMemError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SECTION_CORE = "## What I Know About You"
SECTION_LONG_TERM = "## Relevant Memories"
SECTION_SHORT_TERM = "## Current Context"


def pack_within_budget(
    items: list[T],
    budget: int,
    get_text: Callable[[T], str],
    count_tokens: Callable[[str], int],
) -> tuple[list[T], int]:
    """
    Greedy prefix of `items` whose token cost fits `budget`.

    Returns:
        (packed items, tokens used)
    """
    packed: list[T] = []
    used = 0
    for item in items:
        tokens = count_tokens(get_text(item))
        if used + tokens > budget:
            break
        packed.append(item)
        used += tokens
    return packed, used


def format_context(context: MemoryContext) -> str:
    """Render non-empty sections in fixed order, one "- content" line per item."""
    sections = []
    if context.core:
        sections.append([SECTION_CORE] + [f"- {item.content}" for item in context.core])
    if context.long_term:
        sections.append([SECTION_LONG_TERM] + [f"- {item.content}" for item in context.long_term])
    if context.short_term:
        sections.append(
            [SECTION_SHORT_TERM] + [f"- {item.content}" for item in context.short_term]
        )
    return "".join("\n".join(lines) + "\n\n" for lines in sections)


class RetrievalAssembler:
    def __init__(
        self,
        core: CoreMemoryStore,
        long_term: LongTermStore,
        short_term: ShortTermStore,
        embedder: Embedder,
        tokenizer: Tokenizer | None = None,
        config: RetrievalConfig | None = None,
    ):
        self.core = core
        self.long_term = long_term
        self.short_term = short_term
        self.embedder = embedder
        self.tokenizer = tokenizer or Tokenizer()
        self.config = config or RetrievalConfig()

    async def _short_term_for(
        self, owner_id: str, thread_id: str | None
    ) -> list[ShortTermMemory]:
        if not thread_id:
            return []
        return await self.short_term.by_thread(owner_id, thread_id, self.config.short_term_limit)

    async def _build(
        self,
        core_memories: list[CoreMemory],
        long_term_memories: list[LongTermMemory],
        short_term_memories: list[ShortTermMemory],
    ) -> MemoryContext:
        count = self.tokenizer.count_tokens
        core, core_tokens = pack_within_budget(
            core_memories, self.config.core_budget, lambda m: m.content, count
        )
        long_term, long_term_tokens = pack_within_budget(
            long_term_memories, self.config.long_term_budget, lambda m: m.summary, count
        )
        short_term, short_term_tokens = pack_within_budget(
            short_term_memories, self.config.short_term_budget, lambda m: m.display_text, count
        )

        if self.config.track_access and long_term:
            await self.long_term.record_access([m.id for m in long_term])

        return MemoryContext(
            core=[CoreContextItem(content=m.content, category=m.category.value) for m in core],
            long_term=[
                LongTermContextItem(
                    content=m.summary, type=m.memory_type.value, importance=m.current_importance
                )
                for m in long_term
            ],
            short_term=[
                ShortTermContextItem(content=m.display_text, importance=m.importance)
                for m in short_term
            ],
            core_tokens=core_tokens,
            long_term_tokens=long_term_tokens,
            short_term_tokens=short_term_tokens,
            total_tokens=core_tokens + long_term_tokens + short_term_tokens,
        )

    async def assemble_context(
        self, owner_id: str, thread_id: str | None, query_embedding: list[float]
    ) -> MemoryContext:
        """Long-term memories ranked by similarity to the query."""
        core = await self.core.list_active(owner_id, self.config.core_limit)
        hits = await self.long_term.search_similar(
            owner_id, query_embedding, self.config.long_term_limit
        )
        short_term = await self._short_term_for(owner_id, thread_id)
        return await self._build(core, [hit.memory for hit in hits], short_term)

    async def assemble_context_simple(self, owner_id: str, thread_id: str | None) -> MemoryContext:
        """Variant without a query embedding: newest long-term memories instead."""
        core = await self.core.list_active(owner_id, self.config.core_limit)
        long_term = await self.long_term.list_active(owner_id, self.config.long_term_fallback_limit)
        short_term = await self._short_term_for(owner_id, thread_id)
        return await self._build(core, long_term, short_term)

    async def assemble_for_text(
        self, owner_id: str, thread_id: str | None, text: str
    ) -> MemoryContext:
        """Embed `text` and assemble; falls back to the simple variant if embedding fails."""
        try:
            embedding = await self.embedder.embed(text)
        except TierMemError as e:
            logger.warning(
                "Query embedding failed, using recency fallback",
                extra={"owner_id": owner_id, "error": str(e)},
            )
            return await self.assemble_context_simple(owner_id, thread_id)
        return await self.assemble_context(owner_id, thread_id, embedding)

    format_context = staticmethod(format_context)
