"""Tests for provider factories, scripted providers and engine wiring."""

import pytest

from factmem import EngineConfig, MemoryEngine
from factmem.core import memory_system
from factmem.models import FactList
from factmem.storage import MemoryStore
from factmem.utils import MockEmbeddings, MockProvider, cosine_similarity
from factmem.utils.embeddings import get_embedding_service
from factmem.utils.llm import get_llm_provider
from tests.mock_db import MockMilvusStorageClient, MockMongoStorageClient


def test_mock_embeddings_are_deterministic_and_normalized():
    embeddings = MockEmbeddings(dim=128)

    first = embeddings.embed("User likes green tea")

    assert first == embeddings.embed("user LIKES green tea")
    assert cosine_similarity(first, first) == pytest.approx(1.0)
    assert len(first) == 128


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([], [1.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)


def test_mock_provider_scripts():
    """Test dict, string, callable and exception responses."""
    provider = MockProvider(
        {
            "dict": {"facts": ["a"]},
            "string": '{"facts": ["b"]}',
            "callable": lambda prompt: {"facts": [prompt.upper()]},
            "broken": ConnectionError("down"),
        }
    )

    def ask(prompt):
        return provider.complete_json([{"role": "user", "content": prompt}])

    assert ask("a dict please") == {"facts": ["a"]}
    assert ask("a string please") == {"facts": ["b"]}
    assert ask("callable") == {"facts": ["CALLABLE"]}
    assert ask("nothing matches") == {}
    with pytest.raises(ConnectionError):
        ask("broken")
    assert len(provider.prompts) == 5


def test_complete_structured_validates():
    provider = MockProvider({"facts": {"facts": ["User likes tea"]}})
    messages = [{"role": "user", "content": "facts"}]

    result = provider.complete_structured(messages, FactList)

    assert result.facts == ["User likes tea"]


def test_factories():
    assert isinstance(get_llm_provider("mock"), MockProvider)
    assert get_embedding_service("mock", dim=32).dim == 32
    with pytest.raises(ValueError):
        get_llm_provider("unknown")
    with pytest.raises(ValueError):
        get_embedding_service("unknown")


def test_openai_provider_requires_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ValueError):
        get_llm_provider("openai")


def test_from_config_wires_configured_collaborators(monkeypatch):
    """Test from_config builds providers, storage and thresholds from config."""
    built = {}

    def fake_store(**kwargs):
        built.update(kwargs)
        return MemoryStore(
            mongo_client=MockMongoStorageClient(),
            milvus_client=MockMilvusStorageClient(),
            embedding_service=kwargs["embedding_service"],
        )

    monkeypatch.setattr(memory_system, "MemoryStore", fake_store)
    config = EngineConfig(
        llm_provider="mock",
        embedding_provider="mock",
        embedding_dim=64,
        candidate_limit=3,
        collection_name="wired",
    )

    engine = MemoryEngine.from_config(config)

    assert isinstance(engine.llm, MockProvider)
    assert engine.embeddings.dim == 64
    assert engine.retriever.top_k == 3
    assert built["embedding_dim"] == 64
    assert built["collection_name"] == "wired"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
