"""Embedding service for the memory engine."""

import hashlib
import os
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np


def cosine_similarity(embedding1: List[float], embedding2: List[float]) -> float:
    """Calculate cosine similarity between two embeddings."""
    if not embedding1 or not embedding2:
        return 0.0
    vec1 = np.array(embedding1)
    vec2 = np.array(embedding2)
    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.dot(vec1, vec2) / (norm1 * norm2))


class EmbeddingService(ABC):
    """Abstract base class for embedding services."""

    dim: int

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Generate embedding for a single text."""
        pass


class SentenceTransformerEmbeddings(EmbeddingService):
    """Embedding service using sentence-transformers."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        """
        Initialize the embedding service.

        Args:
            model_name: Name of the sentence-transformers model to use
        """
        self.model_name = model_name
        try:
            from sentence_transformers import SentenceTransformer

            self.model = SentenceTransformer(model_name)
            self.dim = self.model.get_sentence_embedding_dimension()
        except ImportError:
            raise ImportError(
                "sentence-transformers not installed. Install with: pip install sentence-transformers"
            )

    def embed(self, text: str) -> List[float]:
        """Generate embedding for a single text."""
        embedding = self.model.encode([text])[0]
        return embedding.tolist()


class OpenAIEmbeddings(EmbeddingService):
    """Embedding service using OpenAI text-embedding models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None,
        dim: int = 1536,
        timeout: float = 15.0,
        max_retries: int = 0,
    ):
        """
        Initialize the OpenAI embedding service.

        Args:
            api_key: OpenAI API key
            model: Embedding model to use
            base_url: Base URL for OpenAI-compatible API
            dim: Vector dimensionality the model produces
            timeout: Per-request timeout in seconds
            max_retries: Client-level retries (0: retries belong to the caller)
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self.base_url = base_url
        self.dim = dim

        if not self.api_key:
            raise ValueError("OpenAI API key not provided and OPENAI_API_KEY not set")

        try:
            from openai import OpenAI

            self.client = OpenAI(
                api_key=self.api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )
        except ImportError:
            raise ImportError(
                "openai package not installed. Install with: pip install openai"
            )

    def embed(self, text: str) -> List[float]:
        """Generate embedding for a single text."""
        response = self.client.embeddings.create(model=self.model, input=text)
        return response.data[0].embedding


class MockEmbeddings(EmbeddingService):
    """
    Deterministic bag-of-words embeddings for testing without API calls.

    Each lower-cased word is hashed into one dimension, so texts sharing
    words have a proportionally higher cosine similarity.
    """

    TOKEN_PATTERN = re.compile(r"[a-z0-9']+")

    def __init__(self, dim: int = 1536):
        """Initialize mock embeddings with given dimension."""
        self.dim = dim

    def embed(self, text: str) -> List[float]:
        """Return a mock embedding based on the words in the text."""
        embedding = np.zeros(self.dim)
        for token in set(self.TOKEN_PATTERN.findall(text.lower())):
            digest = hashlib.md5(token.encode()).hexdigest()
            embedding[int(digest, 16) % self.dim] += 1.0

        norm = np.linalg.norm(embedding)
        if norm > 0:
            embedding = embedding / norm
        return embedding.tolist()


def get_embedding_service(
    service: str = "sentence-transformers",
    **kwargs,
) -> EmbeddingService:
    """
    Factory function to get an embedding service.

    Args:
        service: Service name ("sentence-transformers", "openai", or "mock")
        **kwargs: Additional service-specific arguments

    Returns:
        EmbeddingService instance
    """
    if service == "sentence-transformers":
        model_name = kwargs.get("model_name", "all-MiniLM-L6-v2")
        return SentenceTransformerEmbeddings(model_name=model_name)
    elif service == "openai":
        return OpenAIEmbeddings(**kwargs)
    elif service == "mock":
        return MockEmbeddings(**kwargs)
    else:
        raise ValueError(f"Unknown embedding service: {service}")
