"""
Tokenizer module for context budget accounting.

Approximate character-ratio counting by default, tiktoken when configured.
"""

from tiermem.config import TokenizerConfig
from tiermem.core.tokenizer.tokenizer import Tokenizer

__all__ = ["Tokenizer", "TokenizerConfig"]
