import json
from typing import Any, Dict, List, Optional

from pymilvus import (
    Collection,
    CollectionSchema,
    DataType,
    FieldSchema,
    connections,
    utility,
)

from ..models import Memory
from ..utils import to_epoch_ms


class MilvusStorageClient:
    """
    Milvus client for vector storage and retrieval.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: str = "19530",
        dim: int = 1536,  # Default to OpenAI embedding dimension
        collection_name: str = "agentic_memory",
        timeout: Optional[float] = 10.0,
    ):
        """
        Initialize the Milvus client.

        Args:
            host: Milvus host
            port: Milvus port
            dim: Dimension of embeddings
            collection_name: Collection holding memory vectors
            timeout: Per-call timeout in seconds
        """
        self.host = host
        self.port = port
        self.dim = dim
        self.collection_name = collection_name
        self.timeout = timeout
        self.alias = "default"

        self._connect()
        self._setup_collection()

    def _connect(self) -> None:
        """Connect to Milvus instance."""
        connections.connect(
            alias=self.alias, host=self.host, port=self.port, timeout=self.timeout
        )

    def _setup_collection(self) -> None:
        """Create the collection if it doesn't exist, then load it."""
        if not utility.has_collection(self.collection_name):
            self._create_collection()

        self.memories_col = Collection(self.collection_name)
        self.memories_col.load()

    def _create_collection(self) -> None:
        """Define schema and create the memory vector collection."""
        fields = [
            FieldSchema(
                name="memory_id", dtype=DataType.VARCHAR, max_length=64, is_primary=True
            ),
            FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=self.dim),
            FieldSchema(name="user_id", dtype=DataType.VARCHAR, max_length=256),
            FieldSchema(name="updated_at", dtype=DataType.INT64),
        ]
        schema = CollectionSchema(fields, "Memory vector storage")
        col = Collection(self.collection_name, schema)

        # Create HNSW index
        index_params = {
            "metric_type": "COSINE",
            "index_type": "HNSW",
            "params": {"M": 8, "efConstruction": 64},
        }
        col.create_index("embedding", index_params)

    @staticmethod
    def _quote(value: str) -> str:
        # JSON string escaping is valid Milvus string-literal escaping
        return json.dumps(value)

    def upsert_embedding(self, memory: Memory, embedding: List[float]) -> None:
        """Insert or replace the vector of a memory."""
        data = [
            [memory.memory_id],
            [embedding],
            [memory.user_id],
            [to_epoch_ms(memory.updated_at)],
        ]
        self.memories_col.upsert(data, timeout=self.timeout)
        # Flush for read-your-writes; consolidation searches right after applying
        self.memories_col.flush(timeout=self.timeout)

    def search(
        self,
        query_embedding: List[float],
        user_id: str,
        top_k: int = 5,
        score_threshold: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search memory vectors of one user by cosine similarity.

        Args:
            query_embedding: Query vector
            user_id: Only vectors owned by this user are considered
            top_k: Number of results
            score_threshold: Drop hits scoring below this value

        Returns:
            List of dicts with 'memory_id', 'score' and 'user_id', best first
        """
        search_params = {"metric_type": "COSINE", "params": {"ef": 64}}

        results = self.memories_col.search(
            data=[query_embedding],
            anns_field="embedding",
            param=search_params,
            limit=top_k,
            expr=f"user_id == {self._quote(user_id)}",
            output_fields=["user_id", "updated_at"],
            timeout=self.timeout,
        )

        hits = []
        for hit in results[0]:
            if score_threshold is not None and hit.score < score_threshold:
                continue
            hits.append(
                {
                    "memory_id": hit.id,
                    "score": hit.score,
                    "user_id": hit.entity.get("user_id"),
                }
            )
        return hits

    def delete_embedding(self, memory_id: str) -> None:
        """Delete the vector of a memory."""
        self.memories_col.delete(
            f"memory_id in [{self._quote(memory_id)}]", timeout=self.timeout
        )

    def delete_user_embeddings(self, user_id: str) -> None:
        """Delete every vector owned by a user."""
        self.memories_col.delete(
            f"user_id == {self._quote(user_id)}", timeout=self.timeout
        )
