"""
chat-recall: durable conversation history with semantic recall.

Core components:
- sessions: Authoritative in-memory session log with crash-safe JSON snapshots
- message_store: Best-effort semantic index over messages (embeddings + Qdrant)
- embeddings: Embedding provider protocol and OpenAI-compatible adapter
- storage: Vector store protocol with Qdrant and in-memory backends
- tools: Memory search and session tools for the agent loop
- models: Core data models (Message, Session, MessagePayload, etc.)
"""

__version__ = "0.1.0"

from chat_recall.config import EmbeddingConfig, QdrantConfig, StorageConfig
from chat_recall.exceptions import (
    ChatRecallError,
    EmbeddingError,
    InvalidSessionKeyError,
    VectorStoreError,
)
from chat_recall.message_store import MessageStore
from chat_recall.models import Message, MessagePayload, Session, StoredMessage, ToolCall
from chat_recall.sessions import SessionManager

__all__ = [
    "__version__",
    # Models
    "Message",
    "ToolCall",
    "Session",
    "MessagePayload",
    "StoredMessage",
    # Config
    "StorageConfig",
    "QdrantConfig",
    "EmbeddingConfig",
    # Errors
    "ChatRecallError",
    "EmbeddingError",
    "VectorStoreError",
    "InvalidSessionKeyError",
    # Stores
    "MessageStore",
    "SessionManager",
]
