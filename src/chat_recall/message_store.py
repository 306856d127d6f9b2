import hashlib
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError

from chat_recall.config import StorageConfig
from chat_recall.embeddings import OpenAICompatibleEmbedding, TextEmbedding
from chat_recall.exceptions import EmbeddingError, VectorStoreError
from chat_recall.models import Message, MessagePayload, StoredMessage, utc_now
from chat_recall.storage import QdrantVectorStore, VectorStore
from chat_recall.storage.vector.models import Point, ScoredPoint
from chat_recall.utils.locks import ReadWriteLock
from chat_recall.utils.timestamps import ensure_utc

logger = logging.getLogger(__name__)

# Qdrant accepts unsigned 64-bit IDs; stay within the signed range for JSON consumers
_POINT_ID_MASK = (1 << 63) - 1


def deterministic_point_id(session_key: str, index: int, timestamp: datetime, content: str = "") -> int:
    """
    Stable point ID derived from a message's session key, position, time and text.

    The position alone repeats once a session is cleared or truncated, so the
    message timestamp and content are part of the key.
    """
    stamp = ensure_utc(timestamp).isoformat()
    key = f"{session_key}:{index}:{stamp}:{content}"
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") & _POINT_ID_MASK


class MessageStore:
    """
    Semantic index over chat messages.

    Embeds message text and keeps it in a vector collection so past messages
    can be recalled by meaning. The index is best-effort: when Qdrant is not
    enabled every operation is a no-op returning an empty result.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        embedding: Optional[TextEmbedding] = None,
        vector_store: Optional[VectorStore] = None,
    ):
        """
        Initialize the message store.

        When enabled, builds any client not injected and makes sure the
        collection exists.

        Args:
            config: Storage configuration (default: everything disabled)
            embedding: Embedding provider (default: built from config.embedding)
            vector_store: Vector store (default: Qdrant built from config.qdrant)

        Raises:
            VectorStoreError: If the collection cannot be checked or created
        """
        self.config = config or StorageConfig()
        self._enabled = self.config.qdrant.enabled
        self._lock = ReadWriteLock()
        self._point_counter = 0
        self.embedding: Optional[TextEmbedding] = None
        self.vector_store: Optional[VectorStore] = None

        if not self._enabled:
            return

        if vector_store is None:
            vector_store = QdrantVectorStore.from_config(self.config.qdrant)
        if embedding is None:
            embedding = OpenAICompatibleEmbedding.from_config(
                self.config.embedding, dimension=self.config.qdrant.vector_size
            )
        self.vector_store = vector_store
        self.embedding = embedding

        try:
            self.vector_store.create_collection()
        except VectorStoreError as e:
            logger.error(f"Failed to ensure collection '{self.config.qdrant.collection}': {e}")
            raise VectorStoreError(f"failed to create Qdrant collection: {e}") from e

        logger.info(f"MessageStore initialized (collection: {self.config.qdrant.collection})")

    def is_enabled(self) -> bool:
        return self._enabled

    def _next_point_id(self, session_key: str, index: int, timestamp: datetime, content: str) -> int:
        # Caller holds the write lock
        if self.config.deterministic_point_ids:
            return deterministic_point_id(session_key, index, timestamp, content)
        self._point_counter += 1
        return self._point_counter

    def store_message(self, session_key: str, message: Message, index: int) -> None:
        """
        Embed one message and upsert it into the collection.

        Args:
            session_key: Session the message belongs to
            message: The message to index
            index: Position of the message within its session

        Raises:
            EmbeddingError: If the embedding call fails
            VectorStoreError: If the upsert fails
        """
        if not self._enabled:
            return

        with self._lock.write_locked():
            try:
                vector = self.embedding.embed_one(message.content)
            except EmbeddingError as e:
                raise EmbeddingError(f"failed to generate embedding: {e}") from e

            timestamp = utc_now()
            payload = MessagePayload(
                session_key=session_key,
                role=message.role,
                content=message.content,
                timestamp=timestamp,
                message_index=index,
            )
            point = Point(
                id=self._next_point_id(session_key, index, timestamp, message.content),
                vector=vector,
                payload=payload.to_dict(),
            )

            try:
                self.vector_store.upsert_points([point])
            except VectorStoreError as e:
                raise VectorStoreError(f"failed to upsert point to Qdrant: {e}") from e

        logger.debug(f"Stored message {session_key}#{index} as point {point.id}")

    def store_messages(self, messages: List[StoredMessage]) -> None:
        """
        Embed and upsert several messages with one embedding call and one upsert.

        Intended for bulk imports; the per-message path uses store_message().

        Raises:
            EmbeddingError: If the batch embedding call fails
            VectorStoreError: If the upsert fails
        """
        if not self._enabled or not messages:
            return

        with self._lock.write_locked():
            texts = [item.message.content for item in messages]
            try:
                vectors = self.embedding.embed_batch(texts)
            except EmbeddingError as e:
                raise EmbeddingError(f"failed to generate embeddings: {e}") from e

            if len(vectors) != len(messages):
                raise EmbeddingError(
                    f"failed to generate embeddings: expected {len(messages)}, got {len(vectors)}"
                )

            points = []
            for item, vector in zip(messages, vectors):
                payload = MessagePayload(
                    session_key=item.session_key,
                    role=item.message.role,
                    content=item.message.content,
                    timestamp=item.timestamp,
                    message_index=item.index,
                )
                points.append(
                    Point(
                        id=self._next_point_id(
                            item.session_key, item.index, item.timestamp, item.message.content
                        ),
                        vector=vector,
                        payload=payload.to_dict(),
                    )
                )

            try:
                self.vector_store.upsert_points(points)
            except VectorStoreError as e:
                raise VectorStoreError(f"failed to upsert points to Qdrant: {e}") from e

        logger.info(f"Stored batch of {len(points)} messages")

    def _search(self, session_key: str, query: str, limit: int) -> List[ScoredPoint]:
        with self._lock.read_locked():
            try:
                vector = self.embedding.embed_one(query)
            except EmbeddingError as e:
                raise EmbeddingError(f"failed to generate query embedding: {e}") from e

            try:
                return self.vector_store.search(vector, session_key, limit)
            except VectorStoreError as e:
                raise VectorStoreError(f"failed to search Qdrant: {e}") from e

    def search_similar_messages_with_payload(
        self, session_key: str, query: str, limit: int
    ) -> List[MessagePayload]:
        """
        Find messages similar to ``query`` and return their full payloads.

        Args:
            session_key: Restrict the search to this session; empty searches all
            query: Natural-language query text
            limit: Maximum number of results

        Returns:
            Payloads in the database's similarity order; hits whose payload
            cannot be parsed are skipped

        Raises:
            EmbeddingError: If the query cannot be embedded
            VectorStoreError: If the search request fails
        """
        if not self._enabled:
            return []

        payloads = []
        for hit in self._search(session_key, query, limit):
            try:
                payloads.append(MessagePayload.from_dict(hit.payload))
            except ValidationError as e:
                logger.warning(f"Skipping search hit {hit.id} with invalid payload: {e}")

        logger.info(f"{len(payloads)} similar messages found (session_key={session_key or '*'})")
        return payloads

    def search_similar_messages(self, session_key: str, query: str, limit: int) -> List[Message]:
        """Same as search_similar_messages_with_payload() but returns bare messages."""
        if not self._enabled:
            return []

        messages = []
        for hit in self._search(session_key, query, limit):
            try:
                messages.append(MessagePayload.from_dict(hit.payload).to_message())
            except ValidationError as e:
                logger.warning(f"Skipping search hit {hit.id} with invalid payload: {e}")

        return messages

    def delete_session_messages(self, session_key: str) -> None:
        """
        Delete every indexed message of a session.

        Raises:
            VectorStoreError: If the delete request fails
        """
        if not self._enabled:
            return

        with self._lock.write_locked():
            try:
                self.vector_store.delete_by_session_key(session_key)
            except VectorStoreError as e:
                raise VectorStoreError(f"failed to delete session messages: {e}") from e

        logger.info(f"Deleted indexed messages for session {session_key}")
