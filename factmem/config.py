"""Runtime configuration for the memory engine."""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class EngineConfig:
    """
    Settings shared by the engine, its collaborators and storage.

    Every field can be overridden from the environment with ``from_env``.
    """

    # Candidate retrieval during consolidation
    candidate_limit: int = 5
    candidate_threshold: float = 0.5
    max_concurrency: int = 4

    # Plain semantic recall
    recall_limit: int = 10
    recall_threshold: float = 0.3
    time_range_limit: int = 50

    # Reasoning service
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 30.0
    llm_base_url: Optional[str] = None

    # Embedding service
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    embedding_timeout: float = 15.0

    # Storage
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "factmem"
    milvus_host: str = "localhost"
    milvus_port: str = "19530"
    collection_name: str = "agentic_memory"
    storage_timeout_ms: int = 10000

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            candidate_limit=int(os.getenv("CANDIDATE_LIMIT", defaults.candidate_limit)),
            candidate_threshold=float(
                os.getenv("CANDIDATE_THRESHOLD", defaults.candidate_threshold)
            ),
            max_concurrency=int(os.getenv("MAX_CONCURRENCY", defaults.max_concurrency)),
            recall_limit=int(os.getenv("RECALL_LIMIT", defaults.recall_limit)),
            recall_threshold=float(
                os.getenv("RECALL_THRESHOLD", defaults.recall_threshold)
            ),
            time_range_limit=int(
                os.getenv("TIME_RANGE_LIMIT", defaults.time_range_limit)
            ),
            llm_provider=os.getenv("LLM_PROVIDER", defaults.llm_provider),
            llm_model=os.getenv("LLM_MODEL", defaults.llm_model),
            llm_timeout=float(os.getenv("LLM_TIMEOUT", defaults.llm_timeout)),
            llm_base_url=os.getenv("LLM_BASE_URL", defaults.llm_base_url),
            embedding_provider=os.getenv(
                "EMBEDDING_PROVIDER", defaults.embedding_provider
            ),
            embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
            embedding_dim=int(os.getenv("EMBEDDING_DIM", defaults.embedding_dim)),
            embedding_timeout=float(
                os.getenv("EMBEDDING_TIMEOUT", defaults.embedding_timeout)
            ),
            mongo_uri=os.getenv("MONGO_URI", defaults.mongo_uri),
            mongo_db=os.getenv("MONGO_DB", defaults.mongo_db),
            milvus_host=os.getenv("MILVUS_HOST", defaults.milvus_host),
            milvus_port=os.getenv("MILVUS_PORT", defaults.milvus_port),
            collection_name=os.getenv(
                "MEMORY_COLLECTION_NAME", defaults.collection_name
            ),
            storage_timeout_ms=int(
                os.getenv("STORAGE_TIMEOUT_MS", defaults.storage_timeout_ms)
            ),
        )
