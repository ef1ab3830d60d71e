"""Memory Engine Orchestrator - Ties the four consolidation stages together."""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..config import EngineConfig
from ..models import ActionType, Memory
from ..storage import MemoryStore
from ..utils import (
    EmbeddingService,
    KeyedLock,
    LLMProvider,
    MockEmbeddings,
    MockProvider,
    now_utc,
    parse_datetime,
)
from ..utils.embeddings import get_embedding_service
from ..utils.llm import get_llm_provider
from .applier import ActionApplier
from .consolidator import ConsolidationResolver
from .extractor import FactExtractor
from .retriever import SimilarityRetriever

logger = logging.getLogger(__name__)

TimeLike = Union[datetime, str, int, float]


class MemoryEngine:
    """
    Main entry point for the per-user memory knowledge base.

    Provides a unified interface for:
    - Remembering free-form text (extract -> retrieve -> resolve -> apply)
    - Recalling memories by semantic similarity
    - Point operations on single memories by ID

    Usage:
        engine = MemoryEngine.from_config(EngineConfig.from_env())
        engine.remember("I'm a UX designer and I use Figma daily", user_id="u1")
        memories = engine.recall("What tools do I use?", user_id="u1")
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        llm_provider: Optional[LLMProvider] = None,
        embedding_service: Optional[EmbeddingService] = None,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize the memory engine.

        Args:
            memory_store: Storage for memories (records + vectors)
            llm_provider: LLM provider (auto-creates mock if not provided)
            embedding_service: Embedding service (auto-creates mock if not provided)
            config: Thresholds, limits and concurrency (defaults if not provided)
        """
        self.config = config or EngineConfig()
        self.store = memory_store

        # Create providers if not provided (use mocks for testing)
        if llm_provider is None:
            self.llm = MockProvider()
        else:
            self.llm = llm_provider

        if embedding_service is None:
            self.embeddings = MockEmbeddings(dim=384)
        else:
            self.embeddings = embedding_service

        if self.store.embeddings is None:
            self.store.embeddings = self.embeddings

        # At most one in-flight remember() per user
        self._user_locks = KeyedLock()

        # Initialize stages
        self.extractor = FactExtractor(llm_provider=self.llm)

        self.retriever = SimilarityRetriever(
            embedding_service=self.embeddings,
            memory_store=self.store,
            top_k=self.config.candidate_limit,
            score_threshold=self.config.candidate_threshold,
            max_concurrency=self.config.max_concurrency,
        )

        self.resolver = ConsolidationResolver(llm_provider=self.llm)

        self.applier = ActionApplier(
            embedding_service=self.embeddings,
            memory_store=self.store,
        )

    @classmethod
    def from_config(cls, config: EngineConfig) -> "MemoryEngine":
        """Build an engine on the configured providers, MongoDB and Milvus."""
        if config.embedding_provider == "openai":
            embedding_kwargs = {
                "model": config.embedding_model,
                "base_url": config.llm_base_url,
                "dim": config.embedding_dim,
                "timeout": config.embedding_timeout,
            }
        elif config.embedding_provider == "sentence-transformers":
            embedding_kwargs = {"model_name": config.embedding_model}
        else:
            embedding_kwargs = {"dim": config.embedding_dim}
        embeddings = get_embedding_service(config.embedding_provider, **embedding_kwargs)

        if config.llm_provider == "openai":
            llm = get_llm_provider(
                "openai",
                model=config.llm_model,
                base_url=config.llm_base_url,
                timeout=config.llm_timeout,
            )
        else:
            llm = get_llm_provider(config.llm_provider)

        store = MemoryStore(
            mongo_uri=config.mongo_uri,
            mongo_db=config.mongo_db,
            milvus_host=config.milvus_host,
            milvus_port=config.milvus_port,
            # Local models decide their own dimensionality
            embedding_dim=embeddings.dim,
            collection_name=config.collection_name,
            timeout_ms=config.storage_timeout_ms,
            embedding_service=embeddings,
        )
        return cls(
            memory_store=store,
            llm_provider=llm,
            embedding_service=embeddings,
            config=config,
        )

    def remember(self, text: str, user_id: str) -> Dict[str, Any]:
        """
        Consolidate new text into a user's memories.

        Runs the full pipeline under the user's lock:
        1. Extract atomic facts from the text
        2. Retrieve similar existing memories for each fact
        3. Decide ADD / UPDATE / DELETE / UNCHANGED per fact
        4. Apply the decisions in order

        Failures raise ExtractionFailure, RetrievalFailure,
        ConsolidationValidationFailure or ApplyFailure. Only an ApplyFailure
        can leave durable changes behind: the actions before its ``index``
        were applied, the rest were not. Nothing is retried.

        Args:
            text: Free-form input from the user
            user_id: Owner of the memories being consolidated

        Returns:
            Dict with processing results
        """
        if not user_id:
            raise ValueError("user_id is required")

        start_time = time.time()

        with self._user_locks.hold(user_id):
            facts = self.extractor.extract(text)
            if not facts:
                logger.info("No facts in input for user %s; nothing to do", user_id)
                return self._summary(facts, [], 0, start_time)

            candidates = self.retriever.find_candidates(facts, user_id)
            actions = self.resolver.resolve(candidates, facts)
            self.applier.apply(actions, candidates.embeddings, user_id)

        return self._summary(facts, actions, len(candidates), start_time)

    def _summary(self, facts, actions, candidate_count, start_time) -> Dict[str, Any]:
        counts = {action_type.value: 0 for action_type in ActionType}
        for action in actions:
            counts[action.action.value] += 1

        return {
            "facts": facts,
            "actions": [a.to_dict() for a in actions],
            "action_counts": counts,
            "candidate_count": candidate_count,
            "processing_time_ms": (time.time() - start_time) * 1000,
        }

    def recall(
        self,
        query: str,
        user_id: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> List[Memory]:
        """
        Semantic search over one user's memories.

        Args:
            query: Natural-language query
            user_id: Owner whose memories are searched
            limit: Maximum number of results (0 returns nothing)
            threshold: Minimum similarity score

        Returns:
            Memories ranked by descending score, each with ``score`` set
        """
        if limit is None:
            limit = self.config.recall_limit
        if limit <= 0:
            return []

        embedding = self.embeddings.embed(query)
        results = self.store.search_memories(
            embedding,
            user_id=user_id,
            limit=limit,
            score_threshold=(
                self.config.recall_threshold if threshold is None else threshold
            ),
        )
        return [m for m in results if m.user_id == user_id]

    def fetch(self, memory_id: str) -> Optional[Memory]:
        """Get a memory by ID, or None if it does not exist."""
        return self.store.get_memory(memory_id)

    def rename(self, memory_id: str, new_content: str) -> bool:
        """
        Replace the content of a single memory.

        Returns:
            True if the memory was found and updated
        """
        memory = self.store.get_memory(memory_id)
        if memory is None:
            return False

        memory.revise(new_content, self.embeddings.embed(new_content), now_utc())
        self.store.update_memory(memory)
        return True

    def forget(self, memory_id: str) -> bool:
        """
        Delete a single memory.

        Returns:
            True if the memory existed
        """
        return self.store.delete_memory(memory_id)

    def forget_all(self, user_id: str) -> int:
        """Delete every memory of a user. Returns the number removed."""
        with self._user_locks.hold(user_id):
            removed = self.store.delete_user_memories(user_id)
        logger.info("Deleted %d memories for user %s", removed, user_id)
        return removed

    def list_by_time_range(
        self,
        user_id: str,
        start: TimeLike,
        end: TimeLike,
        limit: Optional[int] = None,
    ) -> List[Memory]:
        """
        Memories of a user created within [start, end], oldest first.

        Args:
            user_id: Owner of the memories
            start: Range start (datetime, ISO string, or epoch milliseconds)
            end: Range end (datetime, ISO string, or epoch milliseconds)
            limit: Maximum number of results (0 returns nothing)
        """
        if limit is None:
            limit = self.config.time_range_limit
        if limit <= 0:
            return []

        results = self.store.list_by_time_range(
            user_id,
            parse_datetime(start),
            parse_datetime(end),
            limit=limit,
        )
        return [m for m in results if m.user_id == user_id]

    def get_memory_stats(self, user_id: str) -> Dict[str, Any]:
        """Get statistics about one user's memories."""
        stats = self.store.get_stats(user_id)
        stats["user_id"] = user_id
        stats["locks_held"] = len(self._user_locks)
        return stats
