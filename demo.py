#!/usr/bin/env python3
"""
Interactive demo for the fact memory engine.

Demonstrates:
1. Adding a first fact about a user
2. Refining it (UPDATE instead of a duplicate)
3. Adding an unrelated fact alongside
4. Semantic recall and time-range listing

By default everything runs in-process on scripted collaborators. Pass
``--openai`` to run against OpenAI, MongoDB and Milvus configured from the
environment (see EngineConfig.from_env).
"""

import argparse
import logging
from datetime import timedelta

from factmem import EngineConfig, MemoryEngine
from factmem.storage import MemoryStore
from factmem.utils import MockEmbeddings, format_datetime, now_utc

USER_ID = "demo-user"

INPUTS = [
    "I'm a UX designer with 3 years experience",
    "I'm a UX designer with 5 years experience and I use Figma daily",
    "I have a 2-year-old daughter and I'm planning a trip to Japan next month",
]


def print_header(title: str) -> None:
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_section(title: str) -> None:
    """Print a section header."""
    print(f"\n--- {title} ---")


def build_mock_engine() -> MemoryEngine:
    """Engine on in-memory storage and a keyword-driven scripted LLM."""
    from tests.mock_db import MockMilvusStorageClient, MockMongoStorageClient
    from tests.mock_llm import scripted_provider

    store = MemoryStore(
        mongo_client=MockMongoStorageClient(),
        milvus_client=MockMilvusStorageClient(),
    )
    return MemoryEngine(
        memory_store=store,
        llm_provider=scripted_provider(),
        embedding_service=MockEmbeddings(dim=1536),
    )


def show_memories(engine: MemoryEngine) -> None:
    start = now_utc() - timedelta(days=1)
    for memory in engine.list_by_time_range(USER_ID, start, now_utc()):
        print(f"  [{memory.memory_id[:8]}] {format_datetime(memory.updated_at)}  {memory.content}")


def demo_consolidation(engine: MemoryEngine) -> None:
    """Demo: the same user telling the engine things over time."""
    print_header("Demo 1: Consolidating New Facts")

    for text in INPUTS:
        print_section(f"remember: '{text}'")
        result = engine.remember(text, user_id=USER_ID)
        for action in result["actions"]:
            target = f" -> {action['memory_id'][:8]}" if action["memory_id"] else ""
            print(f"  {action['action']:<9} {action['text']}{target}")
        print(f"  ({result['candidate_count']} candidates, "
              f"{result['processing_time_ms']:.1f} ms)")

        print("\n  Stored memories:")
        show_memories(engine)


def demo_recall(engine: MemoryEngine) -> None:
    """Demo: semantic recall over the consolidated memories."""
    print_header("Demo 2: Recall")

    for query in ["UX designer experience", "trip to Japan"]:
        print_section(f"Query: '{query}'")
        for memory in engine.recall(query, user_id=USER_ID):
            print(f"  {memory.score:.3f}  {memory.content}")

    stats = engine.get_memory_stats(USER_ID)
    print(f"\n  {stats['memory_count']} memories stored for {USER_ID}")


def main():
    """Run all demos."""
    parser = argparse.ArgumentParser(description="Fact memory engine demo")
    parser.add_argument(
        "--openai",
        action="store_true",
        help="Use OpenAI, MongoDB and Milvus instead of in-process mocks",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.openai:
        engine = MemoryEngine.from_config(EngineConfig.from_env())
    else:
        engine = build_mock_engine()

    print("\n" + "=" * 60)
    print("  Fact Memory Engine - Interactive Demo")
    print("=" * 60)

    demo_consolidation(engine)
    demo_recall(engine)

    removed = engine.forget_all(USER_ID)
    print_header("Demo Complete!")
    print(f"\nCleaned up {removed} memories.")


if __name__ == "__main__":
    main()
