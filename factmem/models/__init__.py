# Data models for the memory engine
from .action import ActionItem, ActionList, ActionType, ConsolidationAction, FactList
from .memory import Memory

__all__ = [
    "Memory",
    "ActionType",
    "ConsolidationAction",
    "FactList",
    "ActionItem",
    "ActionList",
]
