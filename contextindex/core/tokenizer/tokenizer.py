"""
Token counting and truncation.

Uses tiktoken for accurate OpenAI-compatible token counting, with a
character-ratio approximation mode.
"""

import tiktoken

from contextindex.config import TokenizerConfig


class Tokenizer:
    """
    Token counter used to fit text to the embedding provider's input limit.

    Usage:
        tokenizer = Tokenizer()
        count = tokenizer.count_tokens("Hello world")
        fitted = tokenizer.truncate(long_text, max_tokens=8000)
    """

    def __init__(self, config: TokenizerConfig | None = None):
        """
        Initialize tokenizer with configuration.

        Args:
            config: Optional tokenizer configuration. Uses defaults if not provided.
        """
        self.config = config or TokenizerConfig()
        self._encoder: tiktoken.Encoding | None = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        """Lazy-load tiktoken encoder."""
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.config.model)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        """
        Count tokens, using the approximation when configured.

        Args:
            text: Text to count tokens for

        Returns:
            Token count
        """
        if not text:
            return 0

        if self.config.provider == "approximate":
            return self.estimate_tokens(text)

        return len(self.encoder.encode(text))

    def estimate_tokens(self, text: str) -> int:
        """
        Fast approximate token count using the configured chars_per_token ratio.
        """
        if not text:
            return 0
        return int(len(text) / self.config.chars_per_token)

    def truncate(self, text: str, max_tokens: int) -> str:
        """
        Truncate text to at most max_tokens tokens.

        Text already within the limit is returned unchanged.

        Args:
            text: Text to truncate
            max_tokens: Maximum number of tokens to keep

        Returns:
            Truncated text
        """
        if not text or max_tokens <= 0:
            return ""

        if self.config.provider == "approximate":
            max_chars = int(max_tokens * self.config.chars_per_token)
            return text[:max_chars]

        tokens = self.encoder.encode(text)
        if len(tokens) <= max_tokens:
            return text
        return self.encoder.decode(tokens[:max_tokens])

    def tokenize(self, text: str) -> list[int]:
        """Get token IDs for text."""
        if not text:
            return []
        return self.encoder.encode(text)

    def detokenize(self, tokens: list[int]) -> str:
        """Convert token IDs back to text."""
        if not tokens:
            return ""
        return self.encoder.decode(tokens)
