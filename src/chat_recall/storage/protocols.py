"""
Storage protocol definitions for the semantic message index.

These protocols define the interface that vector storage implementations
must provide. They are implementation-agnostic and can be backed by Qdrant
or held in memory for testing.
"""

from typing import List, Protocol

from chat_recall.storage.vector.models import Point, ScoredPoint


class VectorStore(Protocol):
    """
    Protocol for a single named collection of message vectors.

    Implementations must not retry internally: every method is one round
    trip, and failures are raised as VectorStoreError for the caller to
    handle.
    """

    def collection_exists(self) -> bool:
        """
        Check whether the configured collection exists.

        Returns:
            True if it exists, False if the database reports it missing

        Raises:
            VectorStoreError: On transport errors or unexpected statuses
        """
        ...

    def create_collection(self) -> None:
        """
        Create the collection if it does not exist yet.

        Uses the configured vector size and cosine distance. Does nothing
        when the collection is already present.
        """
        ...

    def upsert_points(self, points: List[Point]) -> None:
        """
        Insert or overwrite points in one batched request.

        Args:
            points: Points to write; an empty list is a no-op
        """
        ...

    def search(self, vector: List[float], session_key: str, limit: int) -> List[ScoredPoint]:
        """
        Similarity search over the collection.

        Args:
            vector: Query embedding
            session_key: Restrict candidates to this session when non-empty
            limit: Maximum number of hits

        Returns:
            Hits ordered by the database's similarity ranking
        """
        ...

    def delete_by_session_key(self, session_key: str) -> None:
        """
        Delete every point whose payload ``session_key`` matches.

        Args:
            session_key: Session whose points to delete
        """
        ...
