from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, MongoClient

from ..models import Memory
from ..utils import to_epoch_ms


class MongoStorageClient:
    """
    MongoDB client for structured memory storage.
    Holds the memory records themselves; vectors live in Milvus.
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        db_name: str = "factmem",
        collection_name: str = "agentic_memory",
        timeout_ms: int = 10000,
    ):
        """
        Initialize the MongoDB client.

        Args:
            uri: MongoDB connection URI
            db_name: Database name
            collection_name: Collection holding memory records
            timeout_ms: Server selection and socket timeout
        """
        self.client = MongoClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        self.db = self.client[db_name]
        self.memories = self.db[collection_name]

        self._setup_indexes()

    def _setup_indexes(self) -> None:
        """Create necessary indexes for performance and uniqueness."""
        self.memories.create_index("memory_id", unique=True)
        self.memories.create_index([("user_id", ASCENDING), ("created_ts", ASCENDING)])

    @staticmethod
    def _to_document(memory: Memory) -> Dict[str, Any]:
        doc = memory.to_dict()
        doc["created_ts"] = to_epoch_ms(memory.created_at)
        doc["updated_ts"] = to_epoch_ms(memory.updated_at)
        return doc

    @staticmethod
    def _from_document(doc: Dict[str, Any]) -> Memory:
        return Memory.from_dict(
            {k: v for k, v in doc.items() if k not in ("_id", "created_ts", "updated_ts")}
        )

    def upsert_memory(self, memory: Memory) -> None:
        """Add or replace a memory record."""
        self.memories.replace_one(
            {"memory_id": memory.memory_id},
            self._to_document(memory),
            upsert=True,
        )

    def get_memory(self, memory_id: str) -> Optional[Memory]:
        """Retrieve a memory by ID."""
        data = self.memories.find_one({"memory_id": memory_id})
        if data:
            return self._from_document(data)
        return None

    def get_memories_by_ids(self, memory_ids: List[str]) -> List[Memory]:
        """Retrieve multiple memories by their IDs."""
        cursor = self.memories.find({"memory_id": {"$in": memory_ids}})
        return [self._from_document(doc) for doc in cursor]

    def delete_memory(self, memory_id: str) -> bool:
        """Delete a memory by ID. Returns True if a record was removed."""
        result = self.memories.delete_one({"memory_id": memory_id})
        return result.deleted_count > 0

    def delete_user_memories(self, user_id: str) -> int:
        """Delete every memory owned by a user. Returns the number removed."""
        result = self.memories.delete_many({"user_id": user_id})
        return result.deleted_count

    def list_by_time_range(
        self,
        user_id: str,
        start: datetime,
        end: datetime,
        limit: int = 50,
    ) -> List[Memory]:
        """Memories of a user created within [start, end], oldest first."""
        cursor = (
            self.memories.find(
                {
                    "user_id": user_id,
                    "created_ts": {"$gte": to_epoch_ms(start), "$lte": to_epoch_ms(end)},
                }
            )
            .sort("created_ts", ASCENDING)
            .limit(limit)
        )
        return [self._from_document(doc) for doc in cursor]

    def count_memories(self, user_id: str) -> int:
        """Count the memories owned by a user."""
        return self.memories.count_documents({"user_id": user_id})
