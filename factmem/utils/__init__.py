# Utility modules
from .datetime_utils import (
    ensure_utc,
    format_datetime,
    from_epoch_ms,
    now_utc,
    parse_datetime,
    to_epoch_ms,
)
from .embeddings import EmbeddingService, MockEmbeddings, cosine_similarity
from .llm import LLMProvider, MockProvider
from .locks import KeyedLock

__all__ = [
    "LLMProvider",
    "MockProvider",
    "EmbeddingService",
    "MockEmbeddings",
    "cosine_similarity",
    "KeyedLock",
    "parse_datetime",
    "format_datetime",
    "now_utc",
    "ensure_utc",
    "to_epoch_ms",
    "from_epoch_ms",
]
