"""Tests for candidate retrieval."""

import threading
import time

import pytest

from factmem.core import SimilarityRetriever
from factmem.errors import RetrievalFailure
from factmem.models import Memory
from factmem.storage import MemoryStore
from factmem.utils import MockEmbeddings
from tests.mock_db import (
    LeakyMilvusStorageClient,
    MockMilvusStorageClient,
    MockMongoStorageClient,
)


@pytest.fixture
def embeddings():
    return MockEmbeddings(dim=1536)


@pytest.fixture
def store(embeddings):
    return MemoryStore(
        mongo_client=MockMongoStorageClient(),
        milvus_client=MockMilvusStorageClient(),
        embedding_service=embeddings,
    )


@pytest.fixture
def retriever(embeddings, store):
    return SimilarityRetriever(embedding_service=embeddings, memory_store=store)


def remember_directly(store, content, user_id):
    memory = Memory.create(content, user_id)
    store.add_memory(memory)
    return memory


def test_finds_similar_memories(retriever, store):
    """Test a related memory above the threshold becomes a candidate."""
    designer = remember_directly(store, "I'm a UX designer with 3 years experience", "alice")
    remember_directly(store, "My favourite food is ramen", "alice")

    candidates = retriever.find_candidates(
        ["I'm a UX designer with 5 years experience and I use Figma daily"], "alice"
    )

    assert candidates.ids() == [designer.memory_id]
    assert next(iter(candidates)).score >= 0.5


def test_threshold_and_limit(embeddings, store):
    """Test only the top-k matches above the score threshold are kept."""
    for i in range(8):
        remember_directly(store, f"User plays tennis on court {i}", "alice")
    remember_directly(store, "Completely unrelated sentence about taxes", "alice")

    retriever = SimilarityRetriever(
        embedding_service=embeddings, memory_store=store, top_k=5, score_threshold=0.5
    )
    candidates = retriever.find_candidates(["User plays tennis"], "alice")

    assert len(candidates) == 5
    assert all(m.score >= 0.5 for m in candidates)
    assert all("tennis" in m.content for m in candidates)


def test_union_is_deduplicated(retriever, store):
    """Test a memory matching several facts is a single candidate."""
    remember_directly(store, "User drinks green tea every morning", "alice")

    candidates = retriever.find_candidates(
        ["User drinks green tea", "User drinks tea every morning"], "alice"
    )

    assert len(candidates) == 1


def test_embeddings_are_kept_per_fact(retriever, embeddings):
    """Test each distinct fact's vector is returned for reuse."""
    facts = ["User likes tea", "User owns a cat", "User likes tea"]

    candidates = retriever.find_candidates(facts, "alice")

    assert set(candidates.embeddings) == {"User likes tea", "User owns a cat"}
    assert candidates.embeddings["User owns a cat"] == embeddings.embed("User owns a cat")


def test_scoped_to_user(retriever, store):
    """Test another user's memories are never candidates."""
    remember_directly(store, "User likes green tea", "bob")

    candidates = retriever.find_candidates(["User likes green tea"], "alice")

    assert len(candidates) == 0
    assert store.milvus.search_calls[-1]["user_id"] == "alice"


def test_foreign_rows_from_store_are_dropped(embeddings):
    """Test rows of another user returned by a misbehaving store are discarded."""
    store = MemoryStore(
        mongo_client=MockMongoStorageClient(),
        milvus_client=LeakyMilvusStorageClient(),
        embedding_service=embeddings,
    )
    remember_directly(store, "User likes green tea", "bob")
    retriever = SimilarityRetriever(embedding_service=embeddings, memory_store=store)

    candidates = retriever.find_candidates(["User likes green tea"], "alice")

    assert len(candidates) == 0


def test_no_facts_no_calls(retriever, store):
    """Test an empty fact list does not touch the store."""
    candidates = retriever.find_candidates([], "alice")

    assert len(candidates) == 0
    assert store.milvus.search_calls == []


class FailingEmbeddings(MockEmbeddings):
    def embed(self, text):
        if "boom" in text:
            raise TimeoutError("embedding timed out")
        return super().embed(text)


def test_embedding_failure_aborts(store):
    """Test one failed embedding fails the whole retrieval."""
    retriever = SimilarityRetriever(
        embedding_service=FailingEmbeddings(dim=64), memory_store=store
    )

    with pytest.raises(RetrievalFailure) as excinfo:
        retriever.find_candidates(["User likes tea", "boom"], "alice")

    assert isinstance(excinfo.value.__cause__, TimeoutError)


def test_search_failure_aborts(embeddings, store):
    """Test a failed similarity search fails the whole retrieval."""

    def broken_search(*args, **kwargs):
        raise ConnectionError("vector store down")

    store.milvus.search = broken_search
    retriever = SimilarityRetriever(embedding_service=embeddings, memory_store=store)

    with pytest.raises(RetrievalFailure):
        retriever.find_candidates(["User likes tea"], "alice")


class CountingEmbeddings(MockEmbeddings):
    """Records how many embed calls run at the same time."""

    def __init__(self, dim=64):
        super().__init__(dim=dim)
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def embed(self, text):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
        return super().embed(text)


def test_concurrency_is_bounded(store):
    """Test per-fact searches never exceed the concurrency limit."""
    embeddings = CountingEmbeddings()
    retriever = SimilarityRetriever(
        embedding_service=embeddings, memory_store=store, max_concurrency=2
    )

    retriever.find_candidates([f"User fact number {i}" for i in range(8)], "alice")

    assert 1 <= embeddings.peak <= 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
