"""
Unit tests for MessageStore.

Uses the keyword embedder and the in-memory vector store so the full
embed -> upsert -> search path runs without network access.
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from chat_recall.config import QdrantConfig, StorageConfig
from chat_recall.exceptions import EmbeddingError, VectorStoreError
from chat_recall.message_store import MessageStore, deterministic_point_id
from chat_recall.models import Message, StoredMessage
from chat_recall.sessions.manager import SessionManager
from chat_recall.storage.vector.memory import InMemoryVectorStore
from chat_recall.storage.vector.models import Point


def test_disabled_store_is_noop():
    """Test that a disabled store succeeds without touching any client."""
    embedding = Mock()
    vector_store = Mock()

    store = MessageStore(StorageConfig(), embedding=embedding, vector_store=vector_store)

    assert store.is_enabled() is False
    assert store.store_message("test-session", Message(role="user", content="test message"), 0) is None
    assert store.store_messages([StoredMessage(session_key="s", message=Message(role="user", content="x"))]) is None
    assert store.search_similar_messages("test-session", "query", 5) == []
    assert store.search_similar_messages_with_payload("test-session", "query", 5) == []
    assert store.delete_session_messages("test-session") is None

    embedding.embed_one.assert_not_called()
    embedding.embed_batch.assert_not_called()
    vector_store.create_collection.assert_not_called()
    vector_store.upsert_points.assert_not_called()


def test_default_config_is_disabled():
    """Test that a store built without config is disabled."""
    assert MessageStore().is_enabled() is False


def test_construction_ensures_collection(message_store, vector_store):
    """Test that an enabled store creates its collection up front."""
    assert message_store.is_enabled() is True
    assert vector_store.collection_exists() is True


def test_construction_fails_when_collection_unavailable(enabled_config, keyword_embedding):
    """Test that an unreachable database fails construction with a descriptive error."""
    vector_store = Mock()
    vector_store.create_collection.side_effect = VectorStoreError("connection refused")

    with pytest.raises(VectorStoreError, match="failed to create Qdrant collection: connection refused"):
        MessageStore(enabled_config, embedding=keyword_embedding, vector_store=vector_store)


def test_store_message_payload(message_store, vector_store):
    """Test that a stored point carries the full message payload."""
    before = datetime.now(timezone.utc)

    message_store.store_message("telegram:1", Message(role="user", content="I love pizza"), 3)

    point = vector_store.get_point(1)
    assert point is not None
    payload = point["payload"]
    assert payload["session_key"] == "telegram:1"
    assert payload["role"] == "user"
    assert payload["content"] == "I love pizza"
    assert payload["message_index"] == 3
    assert datetime.fromisoformat(payload["timestamp"].replace("Z", "+00:00")) >= before


def test_point_ids_are_monotonic(message_store, vector_store):
    """Test that the process-local counter assigns increasing IDs."""
    for i, text in enumerate(["one", "two", "three"]):
        message_store.store_message("s", Message(role="user", content=text), i)

    assert [vector_store.get_point(i)["payload"]["content"] for i in (1, 2, 3)] == ["one", "two", "three"]


def test_injected_empty_store_is_used(enabled_config, keyword_embedding):
    """Test that an injected vector store is kept even when it holds no points."""
    injected = InMemoryVectorStore(vector_size=3)
    assert len(injected) == 0

    store = MessageStore(enabled_config, embedding=keyword_embedding, vector_store=injected)

    assert store.vector_store is injected
    assert store.embedding is keyword_embedding
    assert injected.collection_exists() is True


def test_deterministic_point_ids(keyword_embedding, vector_store):
    """Test that re-indexing the same stored message overwrites its point."""
    config = StorageConfig(
        qdrant=QdrantConfig(enabled=True, vector_size=3),
        deterministic_point_ids=True,
    )
    store = MessageStore(config, embedding=keyword_embedding, vector_store=vector_store)
    timestamp = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)
    item = StoredMessage(
        session_key="telegram:1", message=Message(role="user", content="first"), timestamp=timestamp, index=0
    )

    store.store_messages([item])
    store.store_messages([item])

    assert len(vector_store) == 1
    point = vector_store.get_point(deterministic_point_id("telegram:1", 0, timestamp, "first"))
    assert point["payload"]["content"] == "first"


def test_deterministic_ids_survive_cleared_session(keyword_embedding, vector_store):
    """Test that a message appended after clearing a session keeps earlier points."""
    config = StorageConfig(
        qdrant=QdrantConfig(enabled=True, vector_size=3),
        deterministic_point_ids=True,
    )
    store = MessageStore(config, embedding=keyword_embedding, vector_store=vector_store)
    manager = SessionManager(message_store=store)

    manager.add_message("s", "user", "I had pizza for dinner")
    manager.truncate_history("s", 0)
    manager.add_message("s", "user", "Went hiking on the trail")

    assert len(vector_store) == 2
    contents = sorted(p.content for p in store.search_similar_messages_with_payload("s", "food", 10))
    assert contents == ["I had pizza for dinner", "Went hiking on the trail"]


def test_deterministic_point_id_is_stable():
    """Test that derived IDs are stable, distinct and within the signed 64-bit range."""
    timestamp = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)
    first = deterministic_point_id("telegram:1", 0, timestamp, "hello")
    later = datetime(2026, 2, 1, 8, 0, 1, tzinfo=timezone.utc)

    assert first == deterministic_point_id("telegram:1", 0, timestamp, "hello")
    assert first != deterministic_point_id("telegram:1", 1, timestamp, "hello")
    assert first != deterministic_point_id("telegram:2", 0, timestamp, "hello")
    assert first != deterministic_point_id("telegram:1", 0, later, "hello")
    assert first != deterministic_point_id("telegram:1", 0, timestamp, "goodbye")
    assert 0 <= first < 2**63


def test_store_message_embedding_failure(enabled_config, failing_embedding, vector_store):
    """Test that embedding failures propagate and nothing is written."""
    store = MessageStore(enabled_config, embedding=failing_embedding, vector_store=vector_store)

    with pytest.raises(EmbeddingError, match="failed to generate embedding"):
        store.store_message("s", Message(role="user", content="boom"), 0)

    assert len(vector_store) == 0


def test_store_message_upsert_failure(enabled_config, keyword_embedding):
    """Test that upsert failures propagate as VectorStoreError."""
    vector_store = Mock()
    vector_store.upsert_points.side_effect = VectorStoreError("status=500")
    store = MessageStore(enabled_config, embedding=keyword_embedding, vector_store=vector_store)

    with pytest.raises(VectorStoreError, match="failed to upsert point to Qdrant"):
        store.store_message("s", Message(role="user", content="hello"), 0)


def test_store_messages_batch(message_store, keyword_embedding, vector_store):
    """Test that a batch uses one embedding call and one upsert."""
    timestamp = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    items = [
        StoredMessage(session_key="a", message=Message(role="user", content="pizza night"), timestamp=timestamp, index=0),
        StoredMessage(session_key="a", message=Message(role="assistant", content="Enjoy!"), timestamp=timestamp, index=1),
        StoredMessage(session_key="b", message=Message(role="user", content="hiking trip"), timestamp=timestamp, index=0),
    ]

    message_store.store_messages(items)

    assert keyword_embedding.calls == [["pizza night", "Enjoy!", "hiking trip"]]
    assert len(vector_store) == 3
    third = vector_store.get_point(3)["payload"]
    assert third["session_key"] == "b"
    assert third["timestamp"] == "2026-01-05T09:00:00Z"


def test_store_messages_empty(message_store, keyword_embedding):
    """Test that an empty batch makes no calls."""
    message_store.store_messages([])

    assert keyword_embedding.calls == []


def test_store_messages_single_upsert(enabled_config, keyword_embedding):
    """Test that the batch is written in a single request."""
    vector_store = Mock()
    store = MessageStore(enabled_config, embedding=keyword_embedding, vector_store=vector_store)

    store.store_messages(
        [
            StoredMessage(session_key="s", message=Message(role="user", content="a"), index=0),
            StoredMessage(session_key="s", message=Message(role="user", content="b"), index=1),
        ]
    )

    vector_store.upsert_points.assert_called_once()
    points = vector_store.upsert_points.call_args.args[0]
    assert [p.id for p in points] == [1, 2]


def test_search_similar_messages_ranking(message_store):
    """Test that results follow the vector database's similarity order."""
    message_store.store_message("s", Message(role="user", content="We went hiking up the mountain"), 0)
    message_store.store_message("s", Message(role="user", content="Pizza is my favourite food"), 1)
    message_store.store_message("s", Message(role="assistant", content="Noted."), 2)

    results = message_store.search_similar_messages("s", "what should we eat for dinner", 2)

    assert [m.content for m in results] == ["Pizza is my favourite food", "We went hiking up the mountain"]
    assert results[0].role == "user"


def test_search_scoped_to_session(message_store):
    """Test that a session key excludes other sessions, and empty searches all."""
    message_store.store_message("telegram:1", Message(role="user", content="pizza on monday"), 0)
    message_store.store_message("telegram:2", Message(role="user", content="pasta on tuesday"), 0)

    scoped = message_store.search_similar_messages_with_payload("telegram:1", "food", 10)
    unscoped = message_store.search_similar_messages_with_payload("", "food", 10)

    assert [p.session_key for p in scoped] == ["telegram:1"]
    assert sorted(p.session_key for p in unscoped) == ["telegram:1", "telegram:2"]


def test_search_with_payload_fields(message_store):
    """Test that full payloads are returned."""
    message_store.store_message("telegram:1", Message(role="user", content="pizza"), 7)

    [payload] = message_store.search_similar_messages_with_payload("telegram:1", "food", 5)

    assert payload.session_key == "telegram:1"
    assert payload.message_index == 7
    assert payload.timestamp.tzinfo is not None


def test_search_skips_invalid_payloads(message_store, vector_store):
    """Test that hits whose payload cannot be parsed are dropped."""
    message_store.store_message("s", Message(role="user", content="pizza"), 0)
    vector_store.upsert_points([Point(id=99, vector=[1.0, 0.1, 0.0], payload={"unexpected": True})])
    vector_store.upsert_points(
        [Point(id=100, vector=[1.0, 0.1, 0.0], payload={"session_key": "s", "role": "narrator", "content": "food"})]
    )

    messages = message_store.search_similar_messages("", "food", 10)
    payloads = message_store.search_similar_messages_with_payload("", "food", 10)

    assert [m.content for m in messages] == ["pizza"]
    # The unknown role is still a valid payload, only not a valid Message
    assert sorted(p.content for p in payloads) == ["food", "pizza"]


def test_search_embedding_failure_surfaces(enabled_config, failing_embedding, vector_store):
    """Test that search errors reach the caller."""
    store = MessageStore(enabled_config, embedding=failing_embedding, vector_store=vector_store)

    with pytest.raises(EmbeddingError, match="failed to generate query embedding"):
        store.search_similar_messages("s", "boom", 5)


def test_search_vector_store_failure_surfaces(enabled_config, keyword_embedding):
    """Test that database errors during search reach the caller."""
    vector_store = Mock()
    vector_store.search.side_effect = VectorStoreError("status=503")
    store = MessageStore(enabled_config, embedding=keyword_embedding, vector_store=vector_store)

    with pytest.raises(VectorStoreError, match="failed to search Qdrant"):
        store.search_similar_messages_with_payload("s", "query", 5)


def test_delete_session_messages(message_store, vector_store):
    """Test deleting one session's points."""
    message_store.store_message("a", Message(role="user", content="pizza"), 0)
    message_store.store_message("b", Message(role="user", content="pasta"), 0)

    message_store.delete_session_messages("a")

    assert [p.session_key for p in message_store.search_similar_messages_with_payload("", "food", 10)] == ["b"]
