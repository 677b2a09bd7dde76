"""
ID generation utilities for tiermem.

Every record type gets a short prefixed id:
- Owners: own_xxx
- Sensory records: sen_xxx
- Topics: top_xxx
- Short-term memories: stm_xxx
- Long-term memories: ltm_xxx
- Fact-graph edges: edg_xxx
- Core memories: core_xxx
- Consolidation log entries: log_xxx
- Reflections: ref_xxx
"""

from uuid import uuid4


def _generate(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def generate_owner_id() -> str:
    """Generate unique Owner ID."""
    return _generate("own")


def generate_sensory_id() -> str:
    """
    Generate unique SensoryRecord ID.

    Returns:
        ID in format "sen_xxx" where xxx is 12 hex characters
    """
    return _generate("sen")


def generate_topic_id() -> str:
    """Generate unique Topic ID."""
    return _generate("top")


def generate_short_term_id() -> str:
    """
    Generate unique ShortTermMemory ID.

    Returns:
        ID in format "stm_xxx" where xxx is 12 hex characters
    """
    return _generate("stm")


def generate_long_term_id() -> str:
    """
    Generate unique LongTermMemory ID.

    Returns:
        ID in format "ltm_xxx" where xxx is 12 hex characters
    """
    return _generate("ltm")


def generate_edge_id() -> str:
    """Generate unique MemoryEdge ID."""
    return _generate("edg")


def generate_core_id() -> str:
    """Generate unique CoreMemory ID."""
    return _generate("core")


def generate_log_id() -> str:
    """Generate unique ConsolidationLogEntry ID."""
    return _generate("log")


def generate_reflection_id() -> str:
    """Generate unique Reflection ID."""
    return _generate("ref")
