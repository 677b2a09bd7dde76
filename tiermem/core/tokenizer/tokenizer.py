"""
Token counting for context budgets.

The default approximation is ceil(len / chars_per_token); tiktoken gives an
exact OpenAI-compatible count when configured.
"""

import math

import tiktoken

from tiermem.config import TokenizerConfig


class Tokenizer:
    """
    Token counter used to pack retrieved memories into per-tier budgets.

    Usage:
        tokenizer = Tokenizer()
        count = tokenizer.count_tokens("Hello world")
    """

    def __init__(self, config: TokenizerConfig | None = None):
        self.config = config or TokenizerConfig()
        self._encoder: tiktoken.Encoding | None = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        """Lazy-load tiktoken encoder."""
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.config.model)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0

        if self.config.provider == "approximate":
            return self.estimate_tokens(text)

        return len(self.encoder.encode(text))

    def estimate_tokens(self, text: str) -> int:
        """
        Approximate token count using the configured character ratio.

        Rounds up, so any non-empty text costs at least one token.
        """
        if not text:
            return 0
        return math.ceil(len(text) / self.config.chars_per_token)
