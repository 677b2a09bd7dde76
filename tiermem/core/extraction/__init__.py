"""
Extraction abstraction layer.

- Extractor: message -> entities, relationships, importance, summary
- PatternDetector: memory summaries -> stable patterns
- LLMExtractor: both, backed by an LLMProvider
"""

from tiermem.core.extraction.base import Extractor, PatternDetector
from tiermem.core.extraction.llm import LLMExtractor

__all__ = [
    "Extractor",
    "PatternDetector",
    "LLMExtractor",
]
