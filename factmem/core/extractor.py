"""Stage 1: Fact extraction - Turn one input utterance into atomic facts."""

import logging
from typing import List

from pydantic import ValidationError

from ..errors import ExtractionFailure
from ..models import FactList
from ..prompts import FACT_EXTRACTION_PROMPT
from ..utils import LLMProvider

logger = logging.getLogger(__name__)


class FactExtractor:
    """
    Extract atomic facts from free-form text.

    The reasoning service isolates personal characteristics, preferences,
    plans, goals and concrete actionable statements, returning them as a
    list of short independent statements. Duplicates within one call are
    left in place; the consolidation stage deals with them.
    """

    def __init__(self, llm_provider: LLMProvider, max_tokens: int = 1024):
        """
        Initialize the fact extractor.

        Args:
            llm_provider: LLM provider for extraction
            max_tokens: Completion budget for the extraction call
        """
        self.llm = llm_provider
        self.max_tokens = max_tokens

    def extract(self, input_text: str) -> List[str]:
        """
        Extract facts from one utterance.

        Args:
            input_text: Raw text from the user

        Returns:
            Facts in the order the reasoning service gave them; may be empty

        Raises:
            ExtractionFailure: if the call fails or the answer does not
                validate against the fact list schema
        """
        if not input_text or not input_text.strip():
            return []

        prompt = FACT_EXTRACTION_PROMPT.format(input_text=input_text.strip())

        try:
            result = self.llm.complete_structured(
                [{"role": "user", "content": prompt}],
                FactList,
                max_tokens=self.max_tokens,
                temperature=0.0,
            )
        except ValidationError as exc:
            raise ExtractionFailure(
                f"Fact extraction returned non-conforming output: {exc}"
            ) from exc
        except Exception as exc:
            raise ExtractionFailure(f"Fact extraction call failed: {exc}") from exc

        logger.info("Extracted %d fact(s)", len(result.facts))
        return result.facts
