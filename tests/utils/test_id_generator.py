"""
Tests for ID generation utilities.

Tests cover:
1. Prefix and length of every record ID
2. Uniqueness guarantees
"""

import pytest

from tiermem.utils import (
    generate_core_id,
    generate_edge_id,
    generate_log_id,
    generate_long_term_id,
    generate_owner_id,
    generate_reflection_id,
    generate_sensory_id,
    generate_short_term_id,
    generate_topic_id,
)

GENERATORS = [
    (generate_owner_id, "own_"),
    (generate_sensory_id, "sen_"),
    (generate_topic_id, "top_"),
    (generate_short_term_id, "stm_"),
    (generate_long_term_id, "ltm_"),
    (generate_edge_id, "edg_"),
    (generate_core_id, "core_"),
    (generate_log_id, "log_"),
    (generate_reflection_id, "ref_"),
]


@pytest.mark.parametrize("generate, prefix", GENERATORS)
class TestGenerateIds:
    def test_format(self, generate, prefix):
        """Prefix followed by 12 hex chars."""
        record_id = generate()

        assert record_id.startswith(prefix)
        assert len(record_id) == len(prefix) + 12
        int(record_id[len(prefix) :], 16)

    def test_uniqueness(self, generate, prefix):
        ids = [generate() for _ in range(1000)]
        assert len(ids) == len(set(ids))


class TestCrossTypeUniqueness:
    """IDs of different record types never collide."""

    def test_prefixes_are_distinct(self):
        prefixes = [prefix for _, prefix in GENERATORS]
        assert len(prefixes) == len(set(prefixes))

    def test_mixed_ids_unique(self):
        ids = [generate() for generate, _ in GENERATORS for _ in range(100)]
        assert len(ids) == len(set(ids))
