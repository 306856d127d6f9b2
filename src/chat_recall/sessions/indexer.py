"""
Background forwarding of session messages into the semantic index.

A single worker thread drains a FIFO queue, so messages of one session are
indexed in append order and callers never wait on embedding or Qdrant
latency.
"""

import logging
import queue
import threading
from typing import Optional

from chat_recall.exceptions import ChatRecallError
from chat_recall.message_store import MessageStore
from chat_recall.models import StoredMessage

logger = logging.getLogger(__name__)

_STOP = object()


class BackgroundIndexer:
    def __init__(self, message_store: MessageStore, max_queue_size: int = 0):
        """
        Start the indexing worker.

        Args:
            message_store: Destination semantic index
            max_queue_size: Queue bound; 0 means unbounded
        """
        self.message_store = message_store
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max_queue_size)
        self._closed = False
        # Serialises the closed check with put() so nothing is queued behind _STOP
        self._submit_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._run, name="chat-recall-indexer", daemon=True
        )
        self._thread.start()
        logger.info("Background indexer started")

    @property
    def pending(self) -> int:
        """Approximate number of messages waiting to be indexed."""
        return self._queue.qsize()

    def submit(self, item: StoredMessage) -> None:
        with self._submit_lock:
            if self._closed:
                logger.warning(
                    f"Indexer closed, dropping message {item.session_key}#{item.index}"
                )
                return
            self._queue.put(item)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._index(item)
            finally:
                self._queue.task_done()

    def _index(self, item: StoredMessage) -> None:
        try:
            self.message_store.store_message(item.session_key, item.message, item.index)
        except ChatRecallError as e:
            logger.warning(f"Failed to index message {item.session_key}#{item.index}: {e}")
        except Exception:
            # Keep the worker alive; the log stays authoritative
            logger.exception(f"Unexpected error indexing message {item.session_key}#{item.index}")

    def flush(self) -> None:
        """Block until every submitted message has been processed."""
        self._queue.join()

    def close(self, timeout: Optional[float] = None) -> None:
        """Process what is queued, then stop the worker."""
        with self._submit_lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._thread.join(timeout)
        logger.info("Background indexer stopped")
