"""
Storage backends for the semantic message index.

Provides the VectorStore protocol and its implementations. The Qdrant
backend needs the ``qdrant-client`` package; the in-memory backend has no
extra dependencies.
"""

from chat_recall.storage.protocols import VectorStore
from chat_recall.storage.vector.memory import InMemoryVectorStore
from chat_recall.storage.vector.models import Point, ScoredPoint
from chat_recall.storage.vector.qdrant import QdrantVectorStore

__all__ = [
    "VectorStore",
    "Point",
    "ScoredPoint",
    "InMemoryVectorStore",
    "QdrantVectorStore",
]
