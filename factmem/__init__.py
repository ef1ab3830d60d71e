# Memory consolidation engine
from .config import EngineConfig
from .core import MemoryEngine
from .errors import (
    ApplyFailure,
    ConsolidationValidationFailure,
    ExtractionFailure,
    MemoryEngineError,
    RetrievalFailure,
)
from .models import ActionType, ConsolidationAction, Memory

__all__ = [
    "MemoryEngine",
    "EngineConfig",
    "Memory",
    "ActionType",
    "ConsolidationAction",
    "MemoryEngineError",
    "ExtractionFailure",
    "RetrievalFailure",
    "ConsolidationValidationFailure",
    "ApplyFailure",
]
