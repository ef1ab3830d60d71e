"""Stage 4: Application - Execute consolidation actions against storage."""

import logging
from typing import Dict, List

from ..errors import ApplyFailure
from ..models import ActionType, ConsolidationAction, Memory
from ..storage import MemoryStore
from ..utils import EmbeddingService, now_utc

logger = logging.getLogger(__name__)


class ActionApplier:
    """
    Apply consolidation actions in the order they were decided.

    Processing is fail-fast: later actions may have been decided assuming
    earlier ones succeeded, so the first failure stops the batch. Actions
    already applied stay applied.
    """

    def __init__(self, embedding_service: EmbeddingService, memory_store: MemoryStore):
        """
        Initialize the applier.

        Args:
            embedding_service: Embeds content that has no precomputed vector
            memory_store: Storage the actions are applied to
        """
        self.embeddings = embedding_service
        self.store = memory_store

    def apply(
        self,
        actions: List[ConsolidationAction],
        embeddings_by_fact: Dict[str, List[float]],
        user_id: str,
    ) -> List[ConsolidationAction]:
        """
        Apply actions for one user, strictly in order.

        Args:
            actions: Validated actions from the resolver
            embeddings_by_fact: Fact text -> vector computed during retrieval
            user_id: Owner of every memory created or touched

        Returns:
            The actions that were applied (all of them on success)

        Raises:
            ApplyFailure: naming the first action that failed and its index
        """
        applied = []
        for index, action in enumerate(actions):
            try:
                self._apply_one(action, embeddings_by_fact, user_id)
            except ApplyFailure as exc:
                exc.action = action
                exc.index = index
                raise
            except Exception as exc:
                logger.error(
                    "Action %d (%s) failed after %d applied: %s",
                    index,
                    action.action.value,
                    len(applied),
                    exc,
                )
                raise ApplyFailure(
                    f"{action.action.value} action {index} failed: {exc}",
                    action=action,
                    index=index,
                ) from exc
            applied.append(action)

        logger.info("Applied %d action(s) for user %s", len(applied), user_id)
        return applied

    def _apply_one(
        self,
        action: ConsolidationAction,
        embeddings_by_fact: Dict[str, List[float]],
        user_id: str,
    ) -> None:
        if action.action == ActionType.ADD:
            embedding = embeddings_by_fact.get(action.text)
            if embedding is None:
                embedding = self.embeddings.embed(action.text)
            memory = Memory.create(
                content=action.text,
                user_id=user_id,
                embedding=embedding,
                timestamp=now_utc(),
            )
            self.store.add_memory(memory)
            action.memory_id = memory.memory_id
            logger.debug("ADD %s: %r", memory.memory_id, action.text)

        elif action.action == ActionType.UPDATE:
            memory = self._load_target(action, user_id)
            # Content changed, so the stored vector is stale
            memory.revise(action.text, self.embeddings.embed(action.text), now_utc())
            self.store.update_memory(memory)
            logger.debug("UPDATE %s: %r", memory.memory_id, action.text)

        elif action.action == ActionType.DELETE:
            self._load_target(action, user_id)
            self.store.delete_memory(action.memory_id)
            logger.debug("DELETE %s", action.memory_id)

    def _load_target(self, action: ConsolidationAction, user_id: str) -> Memory:
        memory = self.store.get_memory(action.memory_id)
        if memory is None or memory.user_id != user_id:
            raise ApplyFailure(
                f"{action.action.value} target {action.memory_id!r} no longer exists"
            )
        return memory
