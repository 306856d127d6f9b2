"""Utility helpers shared by the session and semantic stores."""

from chat_recall.utils.locks import ReadWriteLock
from chat_recall.utils.timestamps import ensure_utc, parse_timestamp

__all__ = [
    "ReadWriteLock",
    "ensure_utc",
    "parse_timestamp",
]
