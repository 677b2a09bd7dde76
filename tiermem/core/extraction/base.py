"""
Ports for the language-model collaborators of the pipeline.

The engine only depends on these contracts so that extraction and pattern
detection can be swapped for deterministic doubles in tests.
"""

from abc import ABC, abstractmethod

from tiermem.models import DetectedPattern, ExtractionResult


class Extractor(ABC):
    """Entity and relationship extraction for one message."""

    @abstractmethod
    async def extract(self, text: str) -> ExtractionResult:
        """
        Extract entities, relationships, an importance score and a summary.

        Raises:
            LLMError: If the underlying completion fails
        """
        pass


class PatternDetector(ABC):
    """Detects stable facts across a set of long-term memory summaries."""

    @abstractmethod
    async def detect_patterns(self, summaries: list[str]) -> list[DetectedPattern]:
        """
        Args:
            summaries: One pre-formatted line per memory

        Returns:
            Detected patterns, possibly empty
        """
        pass
