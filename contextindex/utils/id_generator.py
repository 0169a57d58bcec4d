"""
ID generation utilities.

- Memory chunks: mem_xxx
- Knowledge entries: kb_xxx
- File chunks: <file id>_chunk_N
- Message references: msgref_<message id>
"""

from uuid import uuid4


def generate_memory_chunk_id() -> str:
    """
    Generate unique MemoryChunk ID.

    Returns:
        ID in format "mem_xxx" where xxx is 12 hex characters
    """
    return f"mem_{uuid4().hex[:12]}"


def generate_knowledge_id() -> str:
    """
    Generate unique KnowledgeEntry ID.

    Returns:
        ID in format "kb_xxx" where xxx is 12 hex characters
    """
    return f"kb_{uuid4().hex[:12]}"


def generate_file_chunk_id(file_id: str, chunk_index: int) -> str:
    """
    Generate FileChunk ID based on the parent file.

    Args:
        file_id: Parent file ID
        chunk_index: Zero-based chunk index

    Returns:
        ID in format "<file_id>_chunk_N"
    """
    return f"{file_id}_chunk_{chunk_index}"


def generate_reference_id(message_id: str) -> str:
    """
    Generate the MessageReference ID for a message.

    Deterministic so that re-indexing a message overwrites its reference.
    """
    return f"msgref_{message_id}"
