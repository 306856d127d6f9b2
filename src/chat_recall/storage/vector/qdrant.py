import logging
from typing import List, Optional

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PointStruct,
    VectorParams,
)

from chat_recall.config import DEFAULT_VECTOR_SIZE, QdrantConfig
from chat_recall.exceptions import VectorStoreError
from chat_recall.storage.vector.models import Point, ScoredPoint

logger = logging.getLogger(__name__)

SESSION_KEY_FIELD = "session_key"


def _describe(error: Exception) -> str:
    if isinstance(error, UnexpectedResponse):
        body = error.content.decode("utf-8", errors="replace") if error.content else ""
        return f"status={error.status_code}, body={body}"
    return str(error)


def session_filter(session_key: str) -> Filter:
    return Filter(must=[FieldCondition(key=SESSION_KEY_FIELD, match=MatchValue(value=session_key))])


class QdrantVectorStore:
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        grpc_port: int = 6334,
        collection_name: str = "chat_messages",
        vector_size: int = DEFAULT_VECTOR_SIZE,
        api_key: Optional[str] = None,
        secure: bool = False,
        timeout: int = 30,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize the Qdrant vector store.

        No request is made here; call create_collection() to provision the
        collection.

        Args:
            host: Qdrant host (default: localhost)
            port: Qdrant REST port (default: 6333)
            grpc_port: Qdrant gRPC port (default: 6334, unused by the REST transport)
            collection_name: Collection name (default: chat_messages)
            vector_size: Embedding dimension; non-positive values fall back to 1024
            api_key: Optional API key sent with every request
            secure: Use HTTPS instead of HTTP
            timeout: Per-request deadline in seconds
            client: Pre-built QdrantClient (mainly for tests)
        """
        self.host = host
        self.port = port
        self.secure = secure
        self.collection_name = collection_name
        self.vector_size = vector_size if vector_size > 0 else DEFAULT_VECTOR_SIZE
        if client is None:
            client = QdrantClient(
                host=host,
                port=port,
                grpc_port=grpc_port,
                api_key=api_key or None,
                https=secure,
                prefer_grpc=False,
                timeout=timeout,
            )
        self.client = client

    @classmethod
    def from_config(cls, config: QdrantConfig) -> "QdrantVectorStore":
        return cls(
            host=config.host,
            port=config.port,
            grpc_port=config.grpc_port,
            collection_name=config.collection,
            vector_size=config.vector_size,
            api_key=config.api_key,
            secure=config.secure,
        )

    @property
    def base_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.host}:{self.port}"

    def collection_exists(self) -> bool:
        try:
            return self.client.collection_exists(self.collection_name)
        except Exception as e:
            raise VectorStoreError(
                f"failed to check collection existence: {_describe(e)}"
            ) from e

    def create_collection(self) -> None:
        """Create the collection with cosine distance unless it already exists."""
        if self.collection_exists():
            return

        try:
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
            )
        except Exception as e:
            raise VectorStoreError(f"failed to create collection: {_describe(e)}") from e

        logger.info(
            f"Created Qdrant collection '{self.collection_name}' "
            f"(size={self.vector_size}, distance=Cosine)"
        )

    def upsert_points(self, points: List[Point]) -> None:
        if not points:
            return

        try:
            self.client.upsert(
                collection_name=self.collection_name,
                points=[
                    PointStruct(id=point.id, vector=point.vector, payload=point.payload)
                    for point in points
                ],
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"failed to upsert points: {_describe(e)}") from e

        logger.debug(f"Upserted {len(points)} points into '{self.collection_name}'")

    def search(self, vector: List[float], session_key: str, limit: int) -> List[ScoredPoint]:
        """
        Search for points similar to ``vector``.

        Args:
            vector: Query embedding
            session_key: Only score points from this session when non-empty
            limit: Maximum number of hits

        Returns:
            Scored hits with payloads, best match first
        """
        query_filter = session_filter(session_key) if session_key else None

        try:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise VectorStoreError(f"failed to search: {_describe(e)}") from e

        hits = [
            ScoredPoint(id=hit.id, score=hit.score, payload=hit.payload or {}, version=hit.version)
            for hit in response.points
        ]
        logger.debug(f"{len(hits)} hits found (session_key={session_key or '*'})")
        return hits

    def delete_by_session_key(self, session_key: str) -> None:
        try:
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=session_filter(session_key)),
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"failed to delete points: {_describe(e)}") from e

        logger.info(f"Deleted points for session_key={session_key}")
