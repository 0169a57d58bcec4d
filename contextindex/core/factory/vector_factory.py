"""
Builds the content store from the ``qdrant`` config section.

The store URL accepts http and https schemes; the port defaults to
Qdrant's REST port.
"""

from urllib.parse import urlparse

from contextindex.config import QdrantConfig
from contextindex.core.vector_store.qdrant import QdrantStore
from contextindex.utils.exceptions import ConfigurationError

DEFAULT_QDRANT_PORT = 6333


def parse_store_url(url: str) -> tuple[str, int, bool]:
    """
    Split a Qdrant URL into host, port and whether to use TLS.

    Raises:
        ConfigurationError: If the scheme is not http(s) or the host is missing
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(
            f"Unsupported Qdrant URL scheme: {parsed.scheme or '(none)'}", {"url": url}
        )
    if not parsed.hostname:
        raise ConfigurationError("Qdrant URL has no host", {"url": url})
    try:
        port = parsed.port or DEFAULT_QDRANT_PORT
    except ValueError as e:
        raise ConfigurationError(f"Invalid Qdrant port: {e}", {"url": url}) from e
    return parsed.hostname, port, parsed.scheme == "https"


class VectorStoreFactory:
    """Creates the content store every indexing and search path writes to."""

    @staticmethod
    def create(config: QdrantConfig, vector_size: int) -> QdrantStore:
        """
        Create the content store.

        Args:
            config: Qdrant section of the configuration
            vector_size: Embedding dimension the collection is created with

        Raises:
            ConfigurationError: If the URL or vector size is unusable
        """
        if vector_size <= 0:
            raise ConfigurationError(
                f"Vector size must be positive, got {vector_size}", {"vector_size": vector_size}
            )
        host, port, https = parse_store_url(config.url)

        return QdrantStore(
            host=host,
            port=port,
            https=https,
            collection_name=config.collection_name,
            vector_size=vector_size,
            use_grpc=config.use_grpc,
            use_quantization=config.use_quantization,
            hnsw_m=config.hnsw_m,
            hnsw_ef_construct=config.hnsw_ef_construct,
            on_disk=config.on_disk,
            timeout=config.timeout,
        )
