import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from chat_recall.config import StorageConfig
from chat_recall.exceptions import ChatRecallError
from chat_recall.message_store import MessageStore
from chat_recall.models import Message, Session, StoredMessage, utc_now
from chat_recall.sessions.indexer import BackgroundIndexer
from chat_recall.sessions.persistence import load_snapshots, snapshot_path, write_snapshot
from chat_recall.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)

# Internal periodic-task session with no user on the other end
HEARTBEAT_SESSION_KEY = "heartbeat"


def should_index(session_key: str, message: Message) -> bool:
    """
    Decide whether a message takes part in semantic recall.

    Only user turns and final assistant answers are indexed: heartbeat
    traffic, system prompts, tool results, assistant turns that request
    tool calls, and empty messages are skipped.
    """
    if session_key == HEARTBEAT_SESSION_KEY:
        return False
    if message.role in ("tool", "system"):
        return False
    if message.role == "assistant" and message.tool_calls:
        return False
    if not message.content:
        return False
    return True


class SessionManager:
    """
    Authoritative in-memory conversation log keyed by session key.

    Sessions are snapshotted to one JSON file per key under ``storage_path``
    and reloaded on construction. When a message store is attached, new
    messages that pass should_index() are forwarded to the semantic index;
    forwarding failures are logged and never reach the caller.
    """

    def __init__(
        self,
        storage_path: Optional[Union[str, Path]] = None,
        message_store: Optional[MessageStore] = None,
        background_indexing: bool = False,
    ):
        """
        Initialize the session manager.

        Args:
            storage_path: Directory for session snapshots (None = memory only)
            message_store: Optional semantic index to forward messages into
            background_indexing: Forward through a worker thread instead of
                in the calling thread
        """
        self._sessions: Dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self.storage_path: Optional[Path] = Path(storage_path) if storage_path else None
        self.message_store = message_store
        self._indexer: Optional[BackgroundIndexer] = None

        if self.storage_path is not None:
            os.makedirs(self.storage_path, mode=0o755, exist_ok=True)
            self._sessions.update(load_snapshots(self.storage_path))

        if background_indexing and self._indexing_enabled():
            self._indexer = BackgroundIndexer(message_store)

    @classmethod
    def from_config(
        cls,
        storage_path: Optional[Union[str, Path]],
        config: StorageConfig,
        background_indexing: bool = False,
    ) -> "SessionManager":
        """
        Build a manager, attaching a message store when Qdrant is enabled.

        If the message store cannot be created (e.g. Qdrant is unreachable)
        the error is logged and the manager runs without semantic memory.
        """
        message_store = None
        if config.qdrant.enabled:
            try:
                message_store = MessageStore(config)
            except ChatRecallError as e:
                logger.error(f"Failed to create message store, semantic memory disabled: {e}")
            else:
                logger.info(f"SessionManager semantic memory enabled (collection: {config.qdrant.collection})")

        return cls(storage_path, message_store=message_store, background_indexing=background_indexing)

    def _indexing_enabled(self) -> bool:
        return self.message_store is not None and self.message_store.is_enabled()

    def get_or_create(self, key: str) -> Session:
        with self._lock.write_locked():
            session = self._sessions.get(key)
            if session is None:
                now = utc_now()
                session = Session(key=key, created=now, updated=now)
                self._sessions[key] = session
            return session

    def add_message(self, session_key: str, role: str, content: str) -> None:
        self.add_full_message(session_key, Message(role=role, content=content))

    def add_full_message(self, session_key: str, message: Message) -> None:
        """
        Append a message, including any tool calls or tool-call ID, to a session.

        The append is visible to readers as soon as the session lock is
        released. Indexing happens afterwards without holding the lock.
        """
        message = message.model_copy(deep=True)

        with self._lock.write_locked():
            session = self._sessions.get(session_key)
            if session is None:
                session = Session(key=session_key)
                self._sessions[session_key] = session

            session.messages.append(message)
            session.updated = utc_now()
            index = len(session.messages) - 1

        if not self._indexing_enabled() or not should_index(session_key, message):
            return

        if self._indexer is not None:
            self._indexer.submit(
                StoredMessage(session_key=session_key, message=message, index=index)
            )
            return

        try:
            self.message_store.store_message(session_key, message, index)
        except Exception as e:
            logger.warning(f"Failed to store message {session_key}#{index} in semantic index: {e}")

    def get_history(self, key: str) -> List[Message]:
        with self._lock.read_locked():
            session = self._sessions.get(key)
            if session is None:
                return []
            return [message.model_copy(deep=True) for message in session.messages]

    def set_history(self, key: str, history: List[Message]) -> None:
        """Replace a session's messages with a copy of ``history``. No-op for unknown keys."""
        messages = [message.model_copy(deep=True) for message in history]

        with self._lock.write_locked():
            session = self._sessions.get(key)
            if session is not None:
                session.messages = messages
                session.updated = utc_now()

    def get_summary(self, key: str) -> str:
        with self._lock.read_locked():
            session = self._sessions.get(key)
            return session.summary if session is not None else ""

    def set_summary(self, key: str, summary: str) -> None:
        with self._lock.write_locked():
            session = self._sessions.get(key)
            if session is not None:
                session.summary = summary
                session.updated = utc_now()

    def truncate_history(self, key: str, keep_last: int) -> None:
        """
        Keep only the last ``keep_last`` messages of a session.

        ``keep_last <= 0`` clears the history. Unknown keys and
        ``keep_last >= len(history)`` leave the session untouched.
        """
        with self._lock.write_locked():
            session = self._sessions.get(key)
            if session is None:
                return

            if keep_last <= 0:
                session.messages = []
                session.updated = utc_now()
                return

            if len(session.messages) <= keep_last:
                return

            session.messages = session.messages[-keep_last:]
            session.updated = utc_now()

    def session_keys(self) -> List[str]:
        with self._lock.read_locked():
            return sorted(self._sessions)

    def save(self, key: str) -> Optional[Path]:
        """
        Persist a point-in-time snapshot of one session.

        Does nothing when the manager has no storage path or the key is unknown.

        Returns:
            Path of the written snapshot, or None if nothing was written

        Raises:
            InvalidSessionKeyError: If the key maps to an unsafe filename
            OSError: If writing the snapshot fails
        """
        if self.storage_path is None:
            return None

        # Validate before touching the lock so bad keys fail fast
        snapshot_path(self.storage_path, key)

        with self._lock.read_locked():
            stored = self._sessions.get(key)
            if stored is None:
                return None
            snapshot = stored.model_copy(deep=True)

        try:
            return write_snapshot(self.storage_path, snapshot)
        except OSError as e:
            logger.error(f"Failed to save session {key}: {e}")
            raise

    def search_similar_messages(self, session_key: str, query: str, limit: int) -> List[Message]:
        """
        Semantic search over indexed messages.

        Returns an empty list when no message store is enabled.
        """
        if not self._indexing_enabled():
            return []
        return self.message_store.search_similar_messages(session_key, query, limit)

    def flush_indexing(self) -> None:
        """Wait until background indexing has caught up (no-op without a worker)."""
        if self._indexer is not None:
            self._indexer.flush()

    def close(self) -> None:
        if self._indexer is not None:
            self._indexer.close()
            self._indexer = None
