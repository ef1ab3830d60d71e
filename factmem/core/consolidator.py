"""Stage 3: Consolidation - Decide ADD / UPDATE / DELETE / UNCHANGED per fact."""

import json
import logging
import re
from typing import List, Optional

from pydantic import ValidationError

from ..errors import ConsolidationValidationFailure
from ..models import ActionItem, ActionList, ConsolidationAction
from ..prompts import CONSOLIDATION_PROMPT
from ..utils import LLMProvider
from .retriever import CandidateSet

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().casefold()


class ConsolidationResolver:
    """
    Decide what each new fact does to the existing memories.

    All candidates and all facts go to the reasoning service in a single
    call. The answer is validated before anything is applied:
    - every fact gets exactly one action, returned in fact order
    - UPDATE and DELETE must name a memory from the candidate set
    An answer that breaks either rule is rejected, never coerced to ADD.
    """

    def __init__(self, llm_provider: LLMProvider, max_tokens: int = 2048):
        """
        Initialize the resolver.

        Args:
            llm_provider: LLM provider for consolidation decisions
            max_tokens: Completion budget for the consolidation call
        """
        self.llm = llm_provider
        self.max_tokens = max_tokens

    def build_prompt(self, candidates: CandidateSet, facts: List[str]) -> str:
        """Render the consolidation prompt for a candidate set and facts."""
        existing = [{"id": m.memory_id, "text": m.content} for m in candidates]
        return CONSOLIDATION_PROMPT.format(
            existing_memories=json.dumps(existing, ensure_ascii=False),
            new_facts=json.dumps(facts, ensure_ascii=False),
        )

    def resolve(
        self,
        candidates: CandidateSet,
        facts: List[str],
    ) -> List[ConsolidationAction]:
        """
        Produce one consolidation action per fact.

        Args:
            candidates: Existing memories related to the facts
            facts: Facts extracted from the input, in order

        Returns:
            Actions aligned with ``facts`` (same length, same order)

        Raises:
            ConsolidationValidationFailure: on a failed call, a schema
                violation, an unknown memory ID, or incomplete coverage
        """
        if not facts:
            return []

        prompt = self.build_prompt(candidates, facts)

        try:
            result = self.llm.complete_structured(
                [{"role": "user", "content": prompt}],
                ActionList,
                max_tokens=self.max_tokens,
                temperature=0.0,
            )
        except ValidationError as exc:
            raise ConsolidationValidationFailure(
                f"Consolidation returned non-conforming output: {exc}"
            ) from exc
        except Exception as exc:
            raise ConsolidationValidationFailure(
                f"Consolidation call failed: {exc}"
            ) from exc

        actions = self._align(result.actions, facts)
        for action in actions:
            self._check_target(action, candidates)

        logger.info(
            "Resolved %d action(s): %s",
            len(actions),
            ", ".join(a.action.value for a in actions),
        )
        return actions

    def _check_target(
        self, action: ConsolidationAction, candidates: CandidateSet
    ) -> None:
        """UPDATE and DELETE must name a memory the resolver was shown."""
        if not action.targets_memory:
            return
        if not action.memory_id:
            raise ConsolidationValidationFailure(
                f"{action.action.value} action for {action.text!r} names no memory"
            )
        if action.memory_id not in candidates:
            raise ConsolidationValidationFailure(
                f"{action.action.value} action names unknown memory {action.memory_id!r}"
            )

    def _align(
        self,
        items: List[ActionItem],
        facts: List[str],
    ) -> List[ConsolidationAction]:
        """
        Pair every fact with exactly one action.

        Each fact takes the first unused action whose text matches it
        (whitespace and case insensitive). Unpaired facts or leftover
        actions mean the answer does not cover the input.
        """
        remaining: List[Optional[ActionItem]] = list(items)
        aligned = []

        for fact in facts:
            key = _normalize(fact)
            match_index = next(
                (
                    i
                    for i, item in enumerate(remaining)
                    if item is not None and _normalize(item.text) == key
                ),
                None,
            )
            if match_index is None:
                raise ConsolidationValidationFailure(f"No action covers fact {fact!r}")

            item = remaining[match_index]
            remaining[match_index] = None
            action = ConsolidationAction(
                action=item.type,
                text=fact,
                memory_id=item.id,
                old_fact=item.old_fact,
            )
            if not action.targets_memory:
                action.memory_id = None
            aligned.append(action)

        leftover = [item for item in remaining if item is not None]
        if leftover:
            raise ConsolidationValidationFailure(
                f"{len(leftover)} action(s) do not correspond to any fact: "
                + ", ".join(repr(item.text) for item in leftover)
            )

        return aligned
