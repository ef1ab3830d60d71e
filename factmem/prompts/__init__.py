# Prompt templates for LLM operations
from .consolidation import CONSOLIDATION_PROMPT
from .fact_extraction import FACT_EXTRACTION_PROMPT

__all__ = [
    "FACT_EXTRACTION_PROMPT",
    "CONSOLIDATION_PROMPT",
]
