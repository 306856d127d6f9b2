"""
Session store: the authoritative conversation log.

Provides the SessionManager with crash-safe JSON snapshots and optional
forwarding of messages into the semantic index.
"""

from chat_recall.sessions.indexer import BackgroundIndexer
from chat_recall.sessions.manager import HEARTBEAT_SESSION_KEY, SessionManager, should_index
from chat_recall.sessions.persistence import sanitize_filename

__all__ = [
    "SessionManager",
    "BackgroundIndexer",
    "HEARTBEAT_SESSION_KEY",
    "should_index",
    "sanitize_filename",
]
