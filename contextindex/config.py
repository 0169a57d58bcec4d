"""
Configuration for contextindex.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class EmbedderConfig(BaseModel):
    """Embedding provider configuration."""

    provider: str = "openai"  # openai, ollama
    model: str = "text-embedding-3-small"
    base_url: str | None = None
    api_key: str | None = None
    timeout: float = 60.0
    # Fixed deployment dimension, every stored vector has this length
    dimension: int = 1536
    max_input_tokens: int = 8000
    batch_size: int = 20


class CacheConfig(BaseModel):
    """Embedding cache configuration."""

    enabled: bool = True
    max_size: int = 1000
    ttl_seconds: float = 24 * 60 * 60


class TokenizerConfig(BaseModel):
    """Tokenizer configuration."""

    provider: str = "tiktoken"  # tiktoken, approximate
    model: str = "cl100k_base"
    chars_per_token: float = 4.0


class ChunkingConfig(BaseModel):
    """Text chunking configuration."""

    chunk_size: int = 1000
    chunk_overlap: int = 200


class IndexingConfig(BaseModel):
    """Background indexing configuration."""

    max_concurrency: int = 5
    queue_size: int = 100
    retry_attempts: int = 3
    retry_base_delay_ms: int = 1000


class RetrievalConfig(BaseModel):
    """Context retrieval configuration."""

    similarity_threshold: float = 0.7
    max_knowledge: int = 5
    max_memories: int = 5
    max_messages: int = 5
    max_files: int = 3
    skip_general_questions: bool = False


class SearchConfig(BaseModel):
    """Unified search configuration."""

    default_sources: list[str] = Field(default_factory=lambda: ["local", "gmail", "drive"])
    default_limit: int = 10
    semantic_threshold: float = 0.7
    semantic_limit: int = 20


class QdrantConfig(BaseModel):
    """Qdrant configuration."""

    url: str = "http://localhost:6333"
    collection_name: str = "content"
    use_grpc: bool = False
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    use_quantization: bool = False
    on_disk: bool = False
    timeout: int = 30


class TokenStoreConfig(BaseModel):
    """OAuth token store configuration."""

    db_path: str = "data/tokens.db"
    client_id: str | None = None
    client_secret: str | None = None
    token_url: str = "https://oauth2.googleapis.com/token"
    expiry_buffer_seconds: int = 300
    timeout: float = 30.0


class SummaryConfig(BaseModel):
    """Rolling conversation summary configuration."""

    enabled: bool = True
    db_path: str = "data/summaries.db"
    max_chars: int = Field(default=1000, ge=1)
    keep_chars: int = Field(default=800, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    token_store: TokenStoreConfig = Field(default_factory=TokenStoreConfig)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            CTXI_EMBEDDER_PROVIDER: Embedder provider (openai, ollama)
            CTXI_EMBEDDER_MODEL: Embedder model name
            CTXI_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            CTXI_EMBEDDER_DIMENSION: Embedding dimension
            CTXI_CACHE_MAX_SIZE: Embedding cache capacity
            CTXI_INDEXING_MAX_CONCURRENCY: Concurrent indexing runs
            CTXI_RETRIEVAL_THRESHOLD: Minimum similarity for context retrieval
            CTXI_QDRANT_URL: Qdrant URL
            CTXI_QDRANT_COLLECTION: Qdrant collection name
            CTXI_TOKEN_DB_PATH: SQLite token store path
            CTXI_OAUTH_CLIENT_ID / CTXI_OAUTH_CLIENT_SECRET: OAuth client credentials
            CTXI_SUMMARY_ENABLED: Keep rolling conversation summaries
            CTXI_SUMMARY_DB_PATH: SQLite summary store path
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        return cls(
            embedder=EmbedderConfig(
                provider=get_env("CTXI_EMBEDDER_PROVIDER", "openai"),
                model=get_env("CTXI_EMBEDDER_MODEL", "text-embedding-3-small"),
                base_url=get_env("CTXI_EMBEDDER_BASE_URL"),
                api_key=get_env("CTXI_EMBEDDER_API_KEY") or get_env("OPENAI_API_KEY"),
                timeout=get_env("CTXI_EMBEDDER_TIMEOUT", 60.0),
                dimension=get_env("CTXI_EMBEDDER_DIMENSION", 1536),
                max_input_tokens=get_env("CTXI_EMBEDDER_MAX_INPUT_TOKENS", 8000),
                batch_size=get_env("CTXI_EMBEDDER_BATCH_SIZE", 20),
            ),
            cache=CacheConfig(
                enabled=get_env("CTXI_CACHE_ENABLED", True),
                max_size=get_env("CTXI_CACHE_MAX_SIZE", 1000),
                ttl_seconds=get_env("CTXI_CACHE_TTL_SECONDS", 86400.0),
            ),
            tokenizer=TokenizerConfig(
                provider=get_env("CTXI_TOKENIZER_PROVIDER", "tiktoken"),
                model=get_env("CTXI_TOKENIZER_MODEL", "cl100k_base"),
            ),
            chunking=ChunkingConfig(
                chunk_size=get_env("CTXI_CHUNK_SIZE", 1000),
                chunk_overlap=get_env("CTXI_CHUNK_OVERLAP", 200),
            ),
            indexing=IndexingConfig(
                max_concurrency=get_env("CTXI_INDEXING_MAX_CONCURRENCY", 5),
                queue_size=get_env("CTXI_INDEXING_QUEUE_SIZE", 100),
                retry_attempts=get_env("CTXI_INDEXING_RETRY_ATTEMPTS", 3),
                retry_base_delay_ms=get_env("CTXI_INDEXING_RETRY_DELAY_MS", 1000),
            ),
            retrieval=RetrievalConfig(
                similarity_threshold=get_env("CTXI_RETRIEVAL_THRESHOLD", 0.7),
                skip_general_questions=get_env("CTXI_RETRIEVAL_SKIP_GENERAL", False),
            ),
            qdrant=QdrantConfig(
                url=get_env("CTXI_QDRANT_URL", "http://localhost:6333"),
                collection_name=get_env("CTXI_QDRANT_COLLECTION", "content"),
                use_grpc=get_env("CTXI_QDRANT_USE_GRPC", False),
                use_quantization=get_env("CTXI_QDRANT_USE_QUANTIZATION", False),
                on_disk=get_env("CTXI_QDRANT_ON_DISK", False),
            ),
            token_store=TokenStoreConfig(
                db_path=get_env("CTXI_TOKEN_DB_PATH", "data/tokens.db"),
                client_id=get_env("CTXI_OAUTH_CLIENT_ID"),
                client_secret=get_env("CTXI_OAUTH_CLIENT_SECRET"),
                token_url=get_env("CTXI_OAUTH_TOKEN_URL", "https://oauth2.googleapis.com/token"),
            ),
            summary=SummaryConfig(
                enabled=get_env("CTXI_SUMMARY_ENABLED", True),
                db_path=get_env("CTXI_SUMMARY_DB_PATH", "data/summaries.db"),
                max_chars=get_env("CTXI_SUMMARY_MAX_CHARS", 1000),
                keep_chars=get_env("CTXI_SUMMARY_KEEP_CHARS", 800),
            ),
            logging=LoggingConfig(
                level=get_env("CTXI_LOG_LEVEL", "INFO"),
                log_to_file=get_env("CTXI_LOG_TO_FILE", True),
                log_dir=get_env("CTXI_LOG_DIR", "logs"),
                file_rotation=get_env("CTXI_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("CTXI_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("CTXI_LOG_COMPRESSION", "zip"),
                serialize=get_env("CTXI_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Env sections only override YAML sections when they differ from defaults.
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)
        default = cls()

        final_dict = {**config_dict}
        for section in cls.model_fields:
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
