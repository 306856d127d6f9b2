"""
Text embedding protocol for chat-recall.

Provides a unified interface for turning message text into dense vectors
for semantic similarity search.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    All implementations must:

    1. Return one vector per input text, in input order
    2. Produce vectors of a fixed dimension matching the Qdrant collection
    3. Raise EmbeddingError when the provider cannot return a vector

    Example:
        >>> embedder = OpenAICompatibleEmbedding(api_key="...")
        >>> vector = embedder.embed_one("Hello world")
        >>> len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        Must match the ``vector_size`` of the Qdrant collection, since
        all vectors in a collection share one dimensionality.
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model (e.g. "mistral-embed")."""
        ...

    def embed_one(self, text: str) -> List[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: If no credential is configured or the call fails
        """
        ...

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for several texts in one request.

        Args:
            texts: Texts to embed

        Returns:
            List of embedding vectors (same order as input, empty for empty input)

        Raises:
            EmbeddingError: If no credential is configured or the call fails
        """
        ...
