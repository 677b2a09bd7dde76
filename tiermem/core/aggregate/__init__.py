"""Aggregate index over active long-term memory."""

from tiermem.core.aggregate.base import AggregateIndex
from tiermem.core.aggregate.ordered import OrderedAggregateIndex

__all__ = [
    "AggregateIndex",
    "OrderedAggregateIndex",
]
