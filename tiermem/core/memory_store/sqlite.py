"""
SQLite record repository using aiosqlite.

Vectors and nested lists are stored as JSON text; datetimes as ISO-8601
strings, which sort correctly as text.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import aiosqlite
from pydantic import BaseModel

from tiermem.core.memory_store.base import MemoryRepository
from tiermem.models import (
    ConsolidationLogEntry,
    CoreCategory,
    CoreMemory,
    LongTermMemory,
    MemoryEdge,
    Owner,
    Reflection,
    SensoryRecord,
    SensoryStatus,
    ShortTermMemory,
    Topic,
)
from tiermem.utils.exceptions import RepositoryError
from tiermem.utils.logger import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS owners (
        id TEXT PRIMARY KEY,
        external_id TEXT NOT NULL UNIQUE,
        name TEXT,
        email TEXT,
        last_active_at TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sensory_records (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        content_hash TEXT NOT NULL,
        input_type TEXT NOT NULL,
        attention_score REAL NOT NULL,
        status TEXT NOT NULL,
        discard_reason TEXT,
        owner_id TEXT NOT NULL,
        thread_id TEXT,
        created_at TEXT NOT NULL,
        processed_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS topics (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        label TEXT NOT NULL,
        centroid TEXT NOT NULL,
        member_count INTEGER NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS short_term_memories (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        summary TEXT,
        embedding TEXT NOT NULL,
        topic_id TEXT,
        entities TEXT NOT NULL,
        relationships TEXT NOT NULL,
        importance REAL NOT NULL,
        access_count INTEGER NOT NULL,
        last_accessed TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        source_id TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        thread_id TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS long_term_memories (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        summary TEXT NOT NULL,
        embedding TEXT NOT NULL,
        memory_type TEXT NOT NULL,
        category TEXT,
        entity_name TEXT,
        entity_type TEXT,
        base_importance REAL NOT NULL,
        current_importance REAL NOT NULL,
        stability REAL NOT NULL,
        access_count INTEGER NOT NULL,
        last_accessed TEXT NOT NULL,
        reinforcement_count INTEGER NOT NULL,
        consolidated_from TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        is_active INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memory_edges (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        source_name TEXT NOT NULL,
        source_type TEXT NOT NULL,
        target_name TEXT NOT NULL,
        target_type TEXT NOT NULL,
        relation_type TEXT NOT NULL,
        fact TEXT NOT NULL,
        embedding TEXT NOT NULL,
        strength REAL NOT NULL,
        is_active INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS core_memories (
        id TEXT PRIMARY KEY,
        content TEXT NOT NULL,
        embedding TEXT NOT NULL,
        category TEXT NOT NULL,
        confidence REAL NOT NULL,
        evidence_count INTEGER NOT NULL,
        owner_id TEXT NOT NULL,
        is_active INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS consolidation_logs (
        id TEXT PRIMARY KEY,
        owner_id TEXT,
        run_type TEXT NOT NULL,
        memories_processed INTEGER NOT NULL,
        memories_promoted INTEGER NOT NULL,
        memories_pruned INTEGER NOT NULL,
        duration_ms REAL NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reflections (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        insight TEXT NOT NULL,
        insight_type TEXT NOT NULL,
        supporting_memory_count INTEGER NOT NULL,
        confidence REAL NOT NULL,
        action_taken TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_owners_active ON owners(last_active_at)",
    "CREATE INDEX IF NOT EXISTS idx_sensory_hash ON sensory_records(owner_id, content_hash, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_sensory_owner ON sensory_records(owner_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_sensory_status ON sensory_records(status, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_stm_source ON short_term_memories(source_id)",
    "CREATE INDEX IF NOT EXISTS idx_stm_thread ON short_term_memories(thread_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_stm_importance ON short_term_memories(importance, expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_stm_expiry ON short_term_memories(expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_ltm_owner ON long_term_memories(owner_id, is_active, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_ltm_importance ON long_term_memories(is_active, current_importance)",
    "CREATE INDEX IF NOT EXISTS idx_ltm_entity ON long_term_memories(owner_id, entity_name, is_active)",
    "CREATE INDEX IF NOT EXISTS idx_edges_key ON memory_edges(owner_id, source_name, target_name, relation_type)",
    "CREATE INDEX IF NOT EXISTS idx_edges_target ON memory_edges(owner_id, target_name)",
    "CREATE INDEX IF NOT EXISTS idx_core_owner ON core_memories(owner_id, is_active, category)",
    "CREATE INDEX IF NOT EXISTS idx_reflections_owner ON reflections(owner_id, created_at)",
]

# Columns holding JSON-encoded lists, per table
JSON_FIELDS = {
    "topics": ("centroid",),
    "short_term_memories": ("embedding", "entities", "relationships"),
    "long_term_memories": ("embedding", "consolidated_from"),
    "memory_edges": ("embedding",),
    "core_memories": ("embedding",),
}


def _ts(value: datetime) -> str:
    return value.isoformat()


class SQLiteMemoryRepository(MemoryRepository):
    """
    SQLite-based repository for all memory tiers.

    Features:
    - WAL journal for concurrent readers
    - JSON columns for vectors, entities and lineage
    - Secondary indices for every listing the services perform
    """

    def __init__(self, db_path: str = "data/tiermem.db"):
        self.db_path = db_path
        self.connection: aiosqlite.Connection | None = None

        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        if self.connection is None:
            try:
                self.connection = await aiosqlite.connect(self.db_path)
            except Exception as e:
                logger.error("Failed to open SQLite database", extra={"db_path": self.db_path, "error": str(e)})
                raise RepositoryError(f"Failed to open SQLite database: {e}") from e
            self.connection.row_factory = aiosqlite.Row
            await self.connection.execute("PRAGMA journal_mode = WAL")
            await self.connection.commit()

    async def initialize(self) -> None:
        await self.connect()
        try:
            for statement in SCHEMA:
                await self.connection.execute(statement)
            await self.connection.commit()
        except Exception as e:
            logger.error("Failed to initialize schema", extra={"db_path": self.db_path, "error": str(e)})
            raise RepositoryError(f"Failed to initialize schema: {e}") from e

    async def close(self) -> None:
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    # ═══════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════

    def _encode(self, table: str, model: BaseModel) -> dict[str, Any]:
        data = model.model_dump(mode="json")
        for field in JSON_FIELDS.get(table, ()):
            data[field] = json.dumps(data[field])
        return data

    def _decode(self, table: str, model_cls: type[M], row: aiosqlite.Row) -> M:
        data = dict(row)
        for field in JSON_FIELDS.get(table, ()):
            data[field] = json.loads(data[field]) if data[field] else []
        return model_cls.model_validate(data)

    async def _write(self, table: str, model: BaseModel) -> None:
        """INSERT OR REPLACE covers both inserts and full-record updates."""
        await self.connect()
        data = self._encode(table, model)
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        try:
            await self.connection.execute(
                f"INSERT OR REPLACE INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(data.values()),
            )
            await self.connection.commit()
        except Exception as e:
            logger.error(
                f"Failed to write {table} record",
                extra={"table": table, "record_id": data.get("id"), "error": str(e)},
            )
            raise RepositoryError(f"Failed to write {table} record: {e}") from e

    async def _fetch_all(self, table: str, model_cls: type[M], query: str, params: tuple = ()) -> list[M]:
        await self.connect()
        try:
            cursor = await self.connection.execute(query, params)
            rows = await cursor.fetchall()
        except Exception as e:
            logger.error(f"Query on {table} failed", extra={"table": table, "error": str(e)})
            raise RepositoryError(f"Query on {table} failed: {e}") from e
        return [self._decode(table, model_cls, row) for row in rows]

    async def _fetch_one(self, table: str, model_cls: type[M], query: str, params: tuple = ()) -> M | None:
        results = await self._fetch_all(table, model_cls, query, params)
        return results[0] if results else None

    async def _get(self, table: str, model_cls: type[M], record_id: str) -> M | None:
        return await self._fetch_one(table, model_cls, f"SELECT * FROM {table} WHERE id = ?", (record_id,))

    # ═══════════════════════════════════════════════════════════
    # OWNERS
    # ═══════════════════════════════════════════════════════════

    async def insert_owner(self, owner: Owner) -> None:
        await self._write("owners", owner)

    async def get_owner(self, owner_id: str) -> Owner | None:
        return await self._get("owners", Owner, owner_id)

    async def get_owner_by_external_id(self, external_id: str) -> Owner | None:
        return await self._fetch_one(
            "owners", Owner, "SELECT * FROM owners WHERE external_id = ?", (external_id,)
        )

    async def touch_owner(self, owner_id: str, at: datetime) -> None:
        await self.connect()
        await self.connection.execute(
            "UPDATE owners SET last_active_at = ? WHERE id = ?", (_ts(at), owner_id)
        )
        await self.connection.commit()

    async def list_active_owners(self, since: datetime, limit: int) -> list[Owner]:
        return await self._fetch_all(
            "owners",
            Owner,
            "SELECT * FROM owners WHERE last_active_at >= ? ORDER BY last_active_at DESC LIMIT ?",
            (_ts(since), limit),
        )

    # ═══════════════════════════════════════════════════════════
    # SENSORY
    # ═══════════════════════════════════════════════════════════

    async def insert_sensory(self, record: SensoryRecord) -> None:
        await self._write("sensory_records", record)

    async def get_sensory(self, sensory_id: str) -> SensoryRecord | None:
        return await self._get("sensory_records", SensoryRecord, sensory_id)

    async def update_sensory(self, record: SensoryRecord) -> None:
        await self.connect()
        await self.connection.execute(
            "UPDATE sensory_records SET status = ?, discard_reason = ?, processed_at = ? WHERE id = ?",
            (
                record.status.value,
                record.discard_reason,
                _ts(record.processed_at) if record.processed_at else None,
                record.id,
            ),
        )
        await self.connection.commit()

    async def find_sensory_by_hash(
        self, owner_id: str, content_hash: str, since: datetime
    ) -> SensoryRecord | None:
        return await self._fetch_one(
            "sensory_records",
            SensoryRecord,
            """
            SELECT * FROM sensory_records
            WHERE owner_id = ? AND content_hash = ? AND created_at > ?
            ORDER BY created_at DESC LIMIT 1
            """,
            (owner_id, content_hash, _ts(since)),
        )

    async def list_recent_sensory(self, owner_id: str, limit: int) -> list[SensoryRecord]:
        return await self._fetch_all(
            "sensory_records",
            SensoryRecord,
            "SELECT * FROM sensory_records WHERE owner_id = ? ORDER BY created_at DESC LIMIT ?",
            (owner_id, limit),
        )

    async def list_sensory_by_status(
        self, statuses: list[SensoryStatus], limit: int
    ) -> list[SensoryRecord]:
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        return await self._fetch_all(
            "sensory_records",
            SensoryRecord,
            f"SELECT * FROM sensory_records WHERE status IN ({placeholders}) "
            "ORDER BY created_at ASC LIMIT ?",
            (*[status.value for status in statuses], limit),
        )

    # ═══════════════════════════════════════════════════════════
    # TOPICS
    # ═══════════════════════════════════════════════════════════

    async def insert_topic(self, topic: Topic) -> None:
        await self._write("topics", topic)

    async def get_topic(self, topic_id: str) -> Topic | None:
        return await self._get("topics", Topic, topic_id)

    async def update_topic(self, topic: Topic) -> None:
        await self._write("topics", topic)

    # ═══════════════════════════════════════════════════════════
    # SHORT-TERM
    # ═══════════════════════════════════════════════════════════

    async def insert_short_term(self, memory: ShortTermMemory) -> None:
        await self._write("short_term_memories", memory)

    async def get_short_term(self, memory_id: str) -> ShortTermMemory | None:
        return await self._get("short_term_memories", ShortTermMemory, memory_id)

    async def find_short_term_by_source(self, sensory_id: str) -> ShortTermMemory | None:
        return await self._fetch_one(
            "short_term_memories",
            ShortTermMemory,
            "SELECT * FROM short_term_memories WHERE source_id = ? LIMIT 1",
            (sensory_id,),
        )

    async def delete_short_term(self, memory_id: str) -> None:
        await self.connect()
        await self.connection.execute("DELETE FROM short_term_memories WHERE id = ?", (memory_id,))
        await self.connection.commit()

    async def list_short_term_by_thread(
        self, owner_id: str, thread_id: str, limit: int
    ) -> list[ShortTermMemory]:
        return await self._fetch_all(
            "short_term_memories",
            ShortTermMemory,
            """
            SELECT * FROM short_term_memories
            WHERE owner_id = ? AND thread_id = ?
            ORDER BY created_at DESC LIMIT ?
            """,
            (owner_id, thread_id, limit),
        )

    async def list_active_short_term(
        self, owner_id: str, now: datetime, limit: int
    ) -> list[ShortTermMemory]:
        return await self._fetch_all(
            "short_term_memories",
            ShortTermMemory,
            """
            SELECT * FROM short_term_memories
            WHERE owner_id = ? AND expires_at > ?
            ORDER BY importance DESC, created_at DESC LIMIT ?
            """,
            (owner_id, _ts(now), limit),
        )

    async def list_promotion_candidates(
        self, min_importance: float, now: datetime, limit: int
    ) -> list[ShortTermMemory]:
        return await self._fetch_all(
            "short_term_memories",
            ShortTermMemory,
            """
            SELECT * FROM short_term_memories
            WHERE importance >= ? AND expires_at > ?
            ORDER BY importance DESC, created_at ASC LIMIT ?
            """,
            (min_importance, _ts(now), limit),
        )

    async def list_expired_short_term(self, now: datetime, limit: int) -> list[ShortTermMemory]:
        return await self._fetch_all(
            "short_term_memories",
            ShortTermMemory,
            "SELECT * FROM short_term_memories WHERE expires_at < ? ORDER BY expires_at LIMIT ?",
            (_ts(now), limit),
        )

    # ═══════════════════════════════════════════════════════════
    # LONG-TERM
    # ═══════════════════════════════════════════════════════════

    async def insert_long_term(self, memory: LongTermMemory) -> None:
        await self._write("long_term_memories", memory)

    async def get_long_term(self, memory_id: str) -> LongTermMemory | None:
        return await self._get("long_term_memories", LongTermMemory, memory_id)

    async def update_long_term(self, memory: LongTermMemory) -> None:
        await self._write("long_term_memories", memory)

    async def list_active_long_term(self, owner_id: str, limit: int) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories",
            LongTermMemory,
            """
            SELECT * FROM long_term_memories
            WHERE owner_id = ? AND is_active = 1
            ORDER BY created_at DESC LIMIT ?
            """,
            (owner_id, limit),
        )

    async def list_high_importance(
        self, owner_id: str, min_importance: float, limit: int
    ) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories",
            LongTermMemory,
            """
            SELECT * FROM long_term_memories
            WHERE owner_id = ? AND is_active = 1 AND current_importance >= ?
            ORDER BY current_importance DESC LIMIT ?
            """,
            (owner_id, min_importance, limit),
        )

    async def find_long_term_by_lineage(self, short_term_id: str) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories",
            LongTermMemory,
            """
            SELECT * FROM long_term_memories
            WHERE EXISTS (SELECT 1 FROM json_each(consolidated_from) WHERE value = ?)
            """,
            (short_term_id,),
        )

    async def list_active_long_term_after(
        self, after_id: str | None, limit: int
    ) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories",
            LongTermMemory,
            "SELECT * FROM long_term_memories WHERE is_active = 1 AND id > ? ORDER BY id LIMIT ?",
            (after_id or "", limit),
        )

    async def list_prunable_long_term(self, threshold: float, limit: int) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories",
            LongTermMemory,
            """
            SELECT * FROM long_term_memories
            WHERE is_active = 1 AND current_importance < ?
            ORDER BY current_importance LIMIT ?
            """,
            (threshold, limit),
        )

    async def has_active_long_term_for_entity(self, owner_id: str, entity_name: str) -> bool:
        await self.connect()
        cursor = await self.connection.execute(
            """
            SELECT 1 FROM long_term_memories
            WHERE owner_id = ? AND entity_name = ? AND is_active = 1 LIMIT 1
            """,
            (owner_id, entity_name),
        )
        return await cursor.fetchone() is not None

    async def list_all_long_term(self) -> list[LongTermMemory]:
        return await self._fetch_all(
            "long_term_memories", LongTermMemory, "SELECT * FROM long_term_memories"
        )

    # ═══════════════════════════════════════════════════════════
    # EDGES
    # ═══════════════════════════════════════════════════════════

    async def insert_edge(self, edge: MemoryEdge) -> None:
        await self._write("memory_edges", edge)

    async def update_edge(self, edge: MemoryEdge) -> None:
        await self._write("memory_edges", edge)

    async def find_edge(
        self, owner_id: str, source_name: str, target_name: str, relation_type: str
    ) -> MemoryEdge | None:
        return await self._fetch_one(
            "memory_edges",
            MemoryEdge,
            """
            SELECT * FROM memory_edges
            WHERE owner_id = ? AND source_name = ? AND target_name = ? AND relation_type = ?
            LIMIT 1
            """,
            (owner_id, source_name, target_name, relation_type),
        )

    async def list_edges_from(self, owner_id: str, entity_name: str) -> list[MemoryEdge]:
        return await self._fetch_all(
            "memory_edges",
            MemoryEdge,
            """
            SELECT * FROM memory_edges
            WHERE owner_id = ? AND source_name = ? AND is_active = 1
            ORDER BY strength DESC
            """,
            (owner_id, entity_name),
        )

    async def list_edges_to(self, owner_id: str, entity_name: str) -> list[MemoryEdge]:
        return await self._fetch_all(
            "memory_edges",
            MemoryEdge,
            """
            SELECT * FROM memory_edges
            WHERE owner_id = ? AND target_name = ? AND is_active = 1
            ORDER BY strength DESC
            """,
            (owner_id, entity_name),
        )

    async def list_active_edges_after(self, after_id: str | None, limit: int) -> list[MemoryEdge]:
        return await self._fetch_all(
            "memory_edges",
            MemoryEdge,
            "SELECT * FROM memory_edges WHERE is_active = 1 AND id > ? ORDER BY id LIMIT ?",
            (after_id or "", limit),
        )

    # ═══════════════════════════════════════════════════════════
    # CORE
    # ═══════════════════════════════════════════════════════════

    async def insert_core(self, memory: CoreMemory) -> None:
        await self._write("core_memories", memory)

    async def get_core(self, memory_id: str) -> CoreMemory | None:
        return await self._get("core_memories", CoreMemory, memory_id)

    async def update_core(self, memory: CoreMemory) -> None:
        await self._write("core_memories", memory)

    async def list_active_core(
        self, owner_id: str, limit: int, category: CoreCategory | None = None
    ) -> list[CoreMemory]:
        query = "SELECT * FROM core_memories WHERE owner_id = ? AND is_active = 1"
        params: list[Any] = [owner_id]
        if category is not None:
            query += " AND category = ?"
            params.append(category.value)
        query += " ORDER BY confidence DESC, created_at ASC LIMIT ?"
        params.append(limit)
        return await self._fetch_all("core_memories", CoreMemory, query, tuple(params))

    async def find_active_core_by_content(self, owner_id: str, content: str) -> CoreMemory | None:
        return await self._fetch_one(
            "core_memories",
            CoreMemory,
            """
            SELECT * FROM core_memories
            WHERE owner_id = ? AND is_active = 1 AND content = ? LIMIT 1
            """,
            (owner_id, content),
        )

    async def count_active_core(self, owner_id: str) -> int:
        await self.connect()
        cursor = await self.connection.execute(
            "SELECT COUNT(*) FROM core_memories WHERE owner_id = ? AND is_active = 1", (owner_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    # ═══════════════════════════════════════════════════════════
    # AUDIT
    # ═══════════════════════════════════════════════════════════

    async def insert_log(self, entry: ConsolidationLogEntry) -> None:
        await self._write("consolidation_logs", entry)

    async def list_logs(self, limit: int, owner_id: str | None = None) -> list[ConsolidationLogEntry]:
        if owner_id is None:
            return await self._fetch_all(
                "consolidation_logs",
                ConsolidationLogEntry,
                "SELECT * FROM consolidation_logs ORDER BY created_at DESC LIMIT ?",
                (limit,),
            )
        return await self._fetch_all(
            "consolidation_logs",
            ConsolidationLogEntry,
            "SELECT * FROM consolidation_logs WHERE owner_id = ? ORDER BY created_at DESC LIMIT ?",
            (owner_id, limit),
        )

    async def insert_reflection(self, reflection: Reflection) -> None:
        await self._write("reflections", reflection)

    async def list_reflections(self, owner_id: str, limit: int) -> list[Reflection]:
        return await self._fetch_all(
            "reflections",
            Reflection,
            "SELECT * FROM reflections WHERE owner_id = ? ORDER BY created_at DESC LIMIT ?",
            (owner_id, limit),
        )
