"""Failure kinds raised by the consolidation pipeline.

Every one of these is fatal to the enclosing ``remember`` call. Point
operations (fetch, rename, forget) never raise them for unknown ids; they
return ``None`` or ``False`` instead.
"""

from typing import Optional

from .models import ConsolidationAction


class MemoryEngineError(Exception):
    """Base class for memory engine failures."""


class ExtractionFailure(MemoryEngineError):
    """The reasoning service failed or returned non-conforming facts."""


class RetrievalFailure(MemoryEngineError):
    """Embedding or similarity search failed while gathering candidates."""


class ConsolidationValidationFailure(MemoryEngineError):
    """
    The consolidation decisions could not be trusted.

    Raised when the reasoning service fails, returns output that does not
    match the action schema, names a memory outside the candidate set, or
    does not cover every fact exactly once.
    """


class ApplyFailure(MemoryEngineError):
    """
    A storage mutation failed part way through applying actions.

    Actions before ``index`` were applied and are durable; the failing
    action and everything after it were not.
    """

    def __init__(
        self,
        message: str,
        action: Optional[ConsolidationAction] = None,
        index: int = -1,
    ):
        super().__init__(message)
        self.action = action
        self.index = index
