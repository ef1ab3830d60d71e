"""Memory: the durable, user-owned fact record."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Memory:
    """
    A single short factual statement remembered for one user.

    - Content: the current text of the fact (exactly one per memory)
    - Ownership: exactly one user_id, never shared across users
    - Timestamps: created_at is fixed at creation, updated_at moves forward
    - Embedding: cosine-comparable vector of the current content
    """

    memory_id: str
    content: str
    user_id: str
    created_at: datetime
    updated_at: datetime
    embedding: Optional[List[float]] = None
    score: Optional[float] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.memory_id:
            self.memory_id = str(uuid.uuid4())
        self.created_at = _to_utc(self.created_at)
        self.updated_at = _to_utc(self.updated_at)
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    def revise(
        self,
        content: str,
        embedding: List[float],
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Replace the content and its embedding, bumping updated_at."""
        self.content = content
        self.embedding = embedding
        updated_at = _to_utc(timestamp or datetime.now(timezone.utc))
        self.updated_at = max(updated_at, self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "memory_id": self.memory_id,
            "content": self.content,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Memory":
        """Create from dictionary."""
        return cls(
            memory_id=data["memory_id"],
            content=data["content"],
            user_id=data["user_id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            embedding=data.get("embedding"),
        )

    @classmethod
    def create(
        cls,
        content: str,
        user_id: str,
        embedding: Optional[List[float]] = None,
        timestamp: Optional[datetime] = None,
    ) -> "Memory":
        """Factory method to create a Memory with a fresh identifier."""
        created_at = timestamp or datetime.now(timezone.utc)
        return cls(
            memory_id=str(uuid.uuid4()),
            content=content,
            user_id=user_id,
            created_at=created_at,
            updated_at=created_at,
            embedding=embedding,
        )
