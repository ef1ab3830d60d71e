"""Consolidation decisions and the structured outputs they are parsed from."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ActionType(str, Enum):
    """
    What to do with one extracted fact.

    - ADD: nothing stored conveys it, create a new memory
    - UPDATE: replace the content of an existing memory with the fact
    - DELETE: the fact contradicts or obsoletes an existing memory
    - UNCHANGED: already captured, no storage mutation
    """

    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UNCHANGED = "UNCHANGED"


@dataclass
class ConsolidationAction:
    """Decision record for a single fact."""

    action: ActionType
    text: str
    memory_id: Optional[str] = None
    old_fact: Optional[str] = None

    @property
    def targets_memory(self) -> bool:
        """True for actions that must name an existing memory."""
        return self.action in (ActionType.UPDATE, ActionType.DELETE)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "action": self.action.value,
            "text": self.text,
            "memory_id": self.memory_id,
            "old_fact": self.old_fact,
        }


class FactList(BaseModel):
    """Structured output of fact extraction."""

    facts: List[str]

    @field_validator("facts")
    @classmethod
    def _non_empty_facts(cls, facts: List[str]) -> List[str]:
        cleaned = [fact.strip() for fact in facts]
        if any(not fact for fact in cleaned):
            raise ValueError("facts must be non-empty strings")
        return cleaned


class ActionItem(BaseModel):
    """One consolidation decision as returned by the reasoning service."""

    type: ActionType
    id: Optional[str] = None
    text: str
    old_fact: Optional[str] = Field(default=None, alias="oldFact")

    model_config = {"populate_by_name": True}


class ActionList(BaseModel):
    """Structured output of consolidation."""

    actions: List[ActionItem]
