"""Utility modules for contextindex."""

from contextindex.utils.exceptions import (
    AuthError,
    ConfigurationError,
    ContextIndexError,
    DimensionMismatchError,
    EmptyInputError,
    ExtractionError,
    PersistenceError,
    ProviderError,
    ValidationError,
    VectorStoreError,
)
from contextindex.utils.id_generator import (
    generate_file_chunk_id,
    generate_knowledge_id,
    generate_memory_chunk_id,
    generate_reference_id,
)
from contextindex.utils.logger import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_config",
    # ID Generators
    "generate_memory_chunk_id",
    "generate_knowledge_id",
    "generate_file_chunk_id",
    "generate_reference_id",
    # Exceptions
    "ContextIndexError",
    "ValidationError",
    "EmptyInputError",
    "DimensionMismatchError",
    "ProviderError",
    "AuthError",
    "PersistenceError",
    "VectorStoreError",
    "ExtractionError",
    "ConfigurationError",
]
