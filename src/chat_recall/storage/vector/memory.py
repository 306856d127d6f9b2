"""
In-memory vector storage implementation.

Provides a simple in-memory collection with cosine similarity search,
suitable for testing and development. For production, use the Qdrant
implementation.
"""

import logging
from typing import Any, Dict, List, Optional

from chat_recall.config import DEFAULT_VECTOR_SIZE
from chat_recall.exceptions import VectorStoreError
from chat_recall.storage.vector.models import Point, ScoredPoint

logger = logging.getLogger(__name__)


class InMemoryVectorStore:
    """
    In-memory implementation of the VectorStore protocol.

    Stores vectors and payloads in a dictionary keyed by point ID.
    Data is lost on restart.
    """

    def __init__(self, collection_name: str = "chat_messages", vector_size: int = DEFAULT_VECTOR_SIZE):
        self.collection_name = collection_name
        self.vector_size = vector_size
        self._created = False
        # Store points by ID
        self._points: Dict[int, Dict[str, Any]] = {}  # id -> {vector, payload}

        logger.info("InMemoryVectorStore initialized")

    def __len__(self) -> int:
        return len(self._points)

    def collection_exists(self) -> bool:
        return self._created

    def create_collection(self) -> None:
        if self._created:
            return
        self._created = True
        logger.info(f"Created in-memory collection '{self.collection_name}'")

    def _require_collection(self) -> None:
        if not self._created:
            raise VectorStoreError(f"collection '{self.collection_name}' does not exist")

    def _cosine_similarity(self, vec1: List[float], vec2: List[float]) -> float:
        """Calculate cosine similarity between two vectors."""
        if len(vec1) != len(vec2):
            raise VectorStoreError("Vectors must have the same length")

        dot_product = sum(a * b for a, b in zip(vec1, vec2))
        magnitude1 = sum(a * a for a in vec1) ** 0.5
        magnitude2 = sum(b * b for b in vec2) ** 0.5

        if magnitude1 == 0 or magnitude2 == 0:
            return 0.0

        return dot_product / (magnitude1 * magnitude2)

    def upsert_points(self, points: List[Point]) -> None:
        if not points:
            return
        self._require_collection()

        for point in points:
            if len(point.vector) != self.vector_size:
                raise VectorStoreError(
                    f"wrong vector dimension for point {point.id}: "
                    f"expected {self.vector_size}, got {len(point.vector)}"
                )
            self._points[point.id] = {
                "vector": list(point.vector),
                "payload": dict(point.payload),
            }

        logger.debug(f"Upserted {len(points)} points (total: {len(self._points)})")

    def search(self, vector: List[float], session_key: str, limit: int) -> List[ScoredPoint]:
        self._require_collection()

        results = []
        for point_id, point_data in self._points.items():
            payload = point_data["payload"]

            if session_key and payload.get("session_key") != session_key:
                continue

            score = self._cosine_similarity(vector, point_data["vector"])
            results.append(ScoredPoint(id=point_id, score=score, payload=dict(payload)))

        # Sort by score (highest first) and limit
        results.sort(key=lambda hit: hit.score, reverse=True)
        results = results[: max(limit, 0)]

        logger.debug(f"{len(results)} results found")
        return results

    def delete_by_session_key(self, session_key: str) -> None:
        self._require_collection()

        to_delete = [
            point_id
            for point_id, point_data in self._points.items()
            if point_data["payload"].get("session_key") == session_key
        ]
        for point_id in to_delete:
            del self._points[point_id]

        logger.info(f"Deleted {len(to_delete)} points for session_key={session_key}")

    def get_point(self, point_id: int) -> Optional[Dict[str, Any]]:
        """Return the stored vector and payload for ``point_id`` (testing helper)."""
        point = self._points.get(point_id)
        if point is None:
            return None
        return {"vector": list(point["vector"]), "payload": dict(point["payload"])}
