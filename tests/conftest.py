"""Shared fixtures for unit tests."""

from typing import Dict, List

import pytest

from chat_recall.config import QdrantConfig, StorageConfig
from chat_recall.exceptions import EmbeddingError
from chat_recall.message_store import MessageStore
from chat_recall.storage.vector.memory import InMemoryVectorStore


class KeywordEmbedding:
    """
    Deterministic 3-dimensional embedder.

    Texts mentioning food map near [1, 0, 0], outdoor activities near
    [0, 1, 0], everything else to [0, 0, 1].
    """

    FOOD = ("pizza", "pasta", "food", "eat", "dinner")
    OUTDOORS = ("hiking", "mountain", "walk", "trail")

    def __init__(self):
        self.calls: List[List[str]] = []
        self.fail_on: Dict[str, Exception] = {}

    @property
    def dimension(self) -> int:
        return 3

    @property
    def model_name(self) -> str:
        return "keyword"

    def _vector(self, text: str) -> List[float]:
        if text in self.fail_on:
            raise self.fail_on[text]
        lowered = text.lower()
        if any(word in lowered for word in self.FOOD):
            return [1.0, 0.1, 0.0]
        if any(word in lowered for word in self.OUTDOORS):
            return [0.1, 1.0, 0.0]
        return [0.0, 0.0, 1.0]

    def embed_one(self, text: str) -> List[float]:
        self.calls.append([text])
        return self._vector(text)

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]


@pytest.fixture
def keyword_embedding():
    return KeywordEmbedding()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore(vector_size=3)


@pytest.fixture
def enabled_config():
    return StorageConfig(qdrant=QdrantConfig(enabled=True, collection="test-collection", vector_size=3))


@pytest.fixture
def message_store(enabled_config, keyword_embedding, vector_store):
    """An enabled message store backed by the in-memory vector store."""
    return MessageStore(enabled_config, embedding=keyword_embedding, vector_store=vector_store)


@pytest.fixture
def failing_embedding(keyword_embedding):
    keyword_embedding.fail_on["boom"] = EmbeddingError("provider unavailable")
    return keyword_embedding
