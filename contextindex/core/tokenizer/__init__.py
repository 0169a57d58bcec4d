"""
Tokenizer and chunker.

Token counting with tiktoken (with a fast approximation mode) and a
sliding-window character chunker.
"""

from contextindex.config import TokenizerConfig
from contextindex.core.tokenizer.chunker import chunk_text
from contextindex.core.tokenizer.tokenizer import Tokenizer

__all__ = ["Tokenizer", "TokenizerConfig", "chunk_text"]
