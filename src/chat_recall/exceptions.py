"""Exception types raised by chat-recall components."""


class ChatRecallError(Exception):
    """Base class for chat-recall errors."""


class EmbeddingError(ChatRecallError):
    """Raised when the embedding provider cannot produce a vector."""


class VectorStoreError(ChatRecallError):
    """Raised when a vector database request fails or returns a non-success status."""


class InvalidSessionKeyError(ChatRecallError, ValueError):
    """Raised when a session key cannot be mapped to a safe snapshot filename."""
