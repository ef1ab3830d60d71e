# Core memory engine components
from .applier import ActionApplier
from .consolidator import ConsolidationResolver
from .extractor import FactExtractor
from .memory_system import MemoryEngine
from .retriever import CandidateSet, SimilarityRetriever

__all__ = [
    "FactExtractor",
    "SimilarityRetriever",
    "CandidateSet",
    "ConsolidationResolver",
    "ActionApplier",
    "MemoryEngine",
]
