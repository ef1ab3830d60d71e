"""Stage 2: Similarity retrieval - Find existing memories related to new facts."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..errors import RetrievalFailure
from ..models import Memory
from ..storage import MemoryStore
from ..utils import EmbeddingService

logger = logging.getLogger(__name__)


@dataclass
class CandidateSet:
    """
    Union of the memories retrieved for a batch of facts.

    Keyed by memory ID so a memory relevant to several facts is only
    presented once to the resolver. Also carries the fact embeddings so
    they can be reused when storing new memories.
    """

    memories: Dict[str, Memory] = field(default_factory=dict)
    embeddings: Dict[str, List[float]] = field(default_factory=dict)

    def add(self, memory: Memory) -> None:
        """Insert a memory, keeping the first position and the best score."""
        existing = self.memories.get(memory.memory_id)
        if existing is None:
            self.memories[memory.memory_id] = memory
        elif (memory.score or 0.0) > (existing.score or 0.0):
            existing.score = memory.score

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self.memories

    def __len__(self) -> int:
        return len(self.memories)

    def __iter__(self):
        return iter(self.memories.values())

    def ids(self) -> List[str]:
        return list(self.memories)


class SimilarityRetriever:
    """
    Gather candidate memories for a batch of facts, scoped to one user.

    Each fact is embedded and searched on its own rather than as one
    combined query, since facts in one utterance can be semantically far
    apart. Searches run on a bounded thread pool.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        memory_store: MemoryStore,
        top_k: int = 5,
        score_threshold: float = 0.5,
        max_concurrency: int = 4,
    ):
        """
        Initialize the retriever.

        Args:
            embedding_service: Service for embeddings
            memory_store: Storage to search
            top_k: Nearest neighbours kept per fact
            score_threshold: Minimum similarity for a candidate
            max_concurrency: Upper bound on parallel embed+search calls
        """
        self.embeddings = embedding_service
        self.store = memory_store
        self.top_k = top_k
        self.score_threshold = score_threshold
        self.max_concurrency = max(1, max_concurrency)

    def _search_fact(self, fact: str, user_id: str) -> Tuple[List[float], List[Memory]]:
        embedding = self.embeddings.embed(fact)
        matches = self.store.search_memories(
            embedding,
            user_id=user_id,
            limit=self.top_k,
            score_threshold=self.score_threshold,
        )
        return embedding, matches

    def find_candidates(self, facts: List[str], user_id: str) -> CandidateSet:
        """
        Embed every fact and collect the user's memories similar to any of them.

        Args:
            facts: Extracted facts (duplicates are searched once)
            user_id: Owner whose memories are searched

        Returns:
            CandidateSet with deduplicated memories and per-fact embeddings

        Raises:
            RetrievalFailure: if any embedding or search call fails
        """
        candidates = CandidateSet()
        unique_facts = list(dict.fromkeys(facts))
        if not unique_facts:
            return candidates

        workers = min(self.max_concurrency, len(unique_facts))
        try:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = list(
                    pool.map(lambda fact: self._search_fact(fact, user_id), unique_facts)
                )
        except Exception as exc:
            raise RetrievalFailure(f"Candidate retrieval failed: {exc}") from exc

        # Merge in fact order so the candidate listing is deterministic
        for fact, (embedding, matches) in zip(unique_facts, results):
            candidates.embeddings[fact] = embedding
            for memory in matches:
                if memory.user_id != user_id:
                    logger.warning(
                        "Dropping memory %s owned by another user from candidates",
                        memory.memory_id,
                    )
                    continue
                candidates.add(memory)

        logger.info(
            "Found %d candidate memories for %d fact(s)",
            len(candidates),
            len(unique_facts),
        )
        return candidates
