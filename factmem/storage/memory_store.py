"""Storage implementation using MongoDB and Milvus."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import Memory
from ..utils import EmbeddingService
from .milvus_client import MilvusStorageClient
from .mongo_client import MongoStorageClient

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    Persistent storage using MongoDB (records) and Milvus (vectors).

    Every query takes an explicit user filter supplied by the caller; the
    store does not decide which user a request belongs to.
    """

    def __init__(
        self,
        mongo_uri: str = "mongodb://localhost:27017",
        mongo_db: str = "factmem",
        milvus_host: str = "localhost",
        milvus_port: str = "19530",
        embedding_dim: int = 1536,
        collection_name: str = "agentic_memory",
        timeout_ms: int = 10000,
        embedding_service: Optional[EmbeddingService] = None,
        **kwargs,
    ):
        """
        Initialize the memory store with database clients.

        Args:
            mongo_uri: Connection string for MongoDB
            mongo_db: MongoDB database name
            milvus_host: Host for Milvus
            milvus_port: Port for Milvus
            embedding_dim: Dimension of embeddings (must match embedding service)
            collection_name: Name of the Mongo collection and Milvus collection
            timeout_ms: Timeout applied to every database call
            embedding_service: Used to embed content stored without a vector
            mongo_client: Optional injected Mongo client (for testing)
            milvus_client: Optional injected Milvus client (for testing)
        """
        self.embeddings = embedding_service

        if "mongo_client" in kwargs:
            self.mongo = kwargs["mongo_client"]
        else:
            self.mongo = MongoStorageClient(
                uri=mongo_uri,
                db_name=mongo_db,
                collection_name=collection_name,
                timeout_ms=timeout_ms,
            )

        if "milvus_client" in kwargs:
            self.milvus = kwargs["milvus_client"]
        else:
            self.milvus = MilvusStorageClient(
                host=milvus_host,
                port=milvus_port,
                dim=embedding_dim,
                collection_name=collection_name,
                timeout=timeout_ms / 1000,
            )

    def add_memory(self, memory: Memory) -> str:
        """
        Add or replace a memory (Mongo + Milvus).

        The content is embedded first when the memory carries no vector. If
        the vector write fails the record is put back as it was before the
        exception propagates.

        Returns:
            The memory ID
        """
        if memory.embedding is None:
            if self.embeddings is None:
                raise ValueError(
                    f"Memory {memory.memory_id} has no embedding and no embedding service is configured"
                )
            memory.embedding = self.embeddings.embed(memory.content)

        # 1. Save the record to Mongo, remembering what it replaces
        previous = self.mongo.get_memory(memory.memory_id)
        self.mongo.upsert_memory(memory)

        # 2. Save the vector to Milvus; a record without its vector is undone
        try:
            self.milvus.upsert_embedding(memory, memory.embedding)
        except Exception:
            self._restore_record(memory.memory_id, previous)
            raise

        logger.debug("Stored memory %s for user %s", memory.memory_id, memory.user_id)
        return memory.memory_id

    def update_memory(self, memory: Memory) -> None:
        """Persist a revised memory, record and vector."""
        self.add_memory(memory)

    def _restore_record(self, memory_id: str, previous: Optional[Memory]) -> None:
        """Put the Mongo record back to ``previous`` (None: it did not exist)."""
        try:
            if previous is None:
                self.mongo.delete_memory(memory_id)
            else:
                self.mongo.upsert_memory(previous)
        except Exception:
            logger.exception("Could not roll back record %s", memory_id)
            return
        logger.warning("Rolled back record %s after a failed vector write", memory_id)

    def get_memory(self, memory_id: str) -> Optional[Memory]:
        """Get a memory by ID."""
        return self.mongo.get_memory(memory_id)

    def delete_memory(self, memory_id: str) -> bool:
        """
        Delete a memory by ID, record first then vector.

        If the vector delete fails the record is restored before the
        exception propagates.

        Returns:
            True if the memory existed
        """
        previous = self.mongo.get_memory(memory_id)
        existed = self.mongo.delete_memory(memory_id)
        try:
            self.milvus.delete_embedding(memory_id)
        except Exception:
            if previous is not None:
                self._restore_record(memory_id, previous)
            raise
        return existed

    def delete_user_memories(self, user_id: str) -> int:
        """Delete all memories of a user. Returns the number of records removed."""
        # Records first: a leftover vector is skipped by search, a leftover record is not
        removed = self.mongo.delete_user_memories(user_id)
        self.milvus.delete_user_embeddings(user_id)
        return removed

    def search_memories(
        self,
        query_embedding: List[float],
        user_id: str,
        limit: int = 10,
        score_threshold: float = 0.3,
    ) -> List[Memory]:
        """
        Search a user's memories by vector similarity.

        Returns:
            Memories ordered by descending score, each with ``score`` set
        """
        hits = self.milvus.search(
            query_embedding,
            user_id=user_id,
            top_k=limit,
            score_threshold=score_threshold,
        )
        memory_ids = [hit["memory_id"] for hit in hits]
        memory_map = {m.memory_id: m for m in self.mongo.get_memories_by_ids(memory_ids)}

        # Maintain the order of the hits, which are sorted by similarity
        ordered = []
        for hit in hits:
            memory = memory_map.get(hit["memory_id"])
            if memory is None:
                logger.warning("Vector %s has no stored record", hit["memory_id"])
                continue
            memory.score = hit["score"]
            ordered.append(memory)

        return ordered

    def list_by_time_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        limit: int = 50,
    ) -> List[Memory]:
        """Memories of a user created within [start, end], oldest first."""
        return self.mongo.list_by_time_range(user_id, start, end, limit=limit)

    def count_memories(self, user_id: str) -> int:
        """Number of memories owned by a user."""
        return self.mongo.count_memories(user_id)

    def get_stats(self, user_id: str) -> Dict[str, Any]:
        """Get storage statistics for one user."""
        return {
            "memory_count": self.count_memories(user_id),
            "backend": "mongodb+milvus",
        }
