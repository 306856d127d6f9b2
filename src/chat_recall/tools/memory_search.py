"""
Semantic search tool over the message store.

This is the contract the agent's tool layer calls into: a natural-language
query plus optional role / session / time-range filters in, a formatted
list of matching stored messages out.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from chat_recall.exceptions import ChatRecallError
from chat_recall.message_store import MessageStore
from chat_recall.models import MessagePayload
from chat_recall.tools.base import ToolArgs, ToolResult
from chat_recall.utils.timestamps import ensure_utc, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
MAX_LIMIT = 20

NO_RESULTS = "No relevant messages found in memory."


def clamp_limit(value: Any, default: int = DEFAULT_LIMIT) -> int:
    """Parse a limit argument (int, float or numeric string) and clamp it to [1, MAX_LIMIT]."""
    limit = default
    if isinstance(value, int) and not isinstance(value, bool):
        limit = value
    elif isinstance(value, float) and math.isfinite(value):
        limit = int(value)
    elif isinstance(value, str):
        try:
            limit = int(value.strip())
        except ValueError:
            pass

    return max(1, min(limit, MAX_LIMIT))


class MemorySearchTool:
    name = "qdrant_search_memory"
    description = (
        "Search for relevant messages in long-term memory using semantic search.\n"
        "Use this tool when you need to find past conversations or information stored in memory.\n"
        "Supports filtering by role (user/assistant), session key, and time range."
    )

    def __init__(self, message_store: Optional[MessageStore] = None):
        self.message_store = message_store
        self.session_key = ""

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool arguments."""
        return {
            "type": "object",
            "properties": {
                "query_text": {
                    "type": "string",
                    "description": "The search query - describe what you're looking for in natural language",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum number of results to return (default: {DEFAULT_LIMIT}, max: {MAX_LIMIT})",
                    "default": DEFAULT_LIMIT,
                },
                "filters": {
                    "type": "object",
                    "description": "Optional filters to narrow search results",
                    "properties": {
                        "role": {
                            "type": "string",
                            "description": "Filter by message role: 'user', 'assistant', or 'system'",
                            "enum": ["user", "assistant", "system"],
                        },
                        "session_key": {
                            "type": "string",
                            "description": "Filter by specific session key (e.g., 'telegram:123456')",
                        },
                        "timestamp_from": {
                            "type": "string",
                            "description": "Filter messages from this timestamp (ISO 8601, e.g. 2024-01-01T00:00:00Z, or an expression like 'yesterday')",
                        },
                        "timestamp_to": {
                            "type": "string",
                            "description": "Filter messages until this timestamp (ISO 8601 or a date expression)",
                        },
                    },
                },
            },
            "required": ["query_text"],
        }

    def set_session_key(self, session_key: str) -> None:
        """Set the session searched when the call does not name one."""
        self.session_key = session_key

    def execute(self, args: ToolArgs) -> ToolResult:
        if self.message_store is None or not self.message_store.is_enabled():
            return ToolResult.error(
                "Qdrant memory search is not configured. Enable it in config to search long-term memory."
            )

        query_text = args.get("query_text")
        if not isinstance(query_text, str) or not query_text:
            return ToolResult.error("Error: query_text is required and must be a non-empty string")

        limit = clamp_limit(args.get("limit", DEFAULT_LIMIT))

        filters = args.get("filters")
        if not isinstance(filters, dict):
            filters = {}

        search_session_key = self.session_key
        session_filter = filters.get("session_key")
        if isinstance(session_filter, str) and session_filter:
            search_session_key = session_filter

        try:
            messages = self.message_store.search_similar_messages_with_payload(
                search_session_key, query_text, limit
            )
        except ChatRecallError as e:
            logger.error(f"Memory search failed: {e}")
            return ToolResult.error(f"Error searching memory: {e}")

        filtered = self.apply_filters(messages, filters)
        if not filtered:
            return ToolResult(for_llm=NO_RESULTS)

        return ToolResult(for_llm=self.format_results(filtered))

    def apply_filters(
        self, messages: List[MessagePayload], filters: Dict[str, Any]
    ) -> List[MessagePayload]:
        """Apply role and timestamp filters to search results."""
        if not filters:
            return messages
        return [message for message in messages if self.matches_filters(message, filters)]

    def matches_filters(self, message: MessagePayload, filters: Dict[str, Any]) -> bool:
        role = filters.get("role")
        if isinstance(role, str) and message.role.lower() != role.lower():
            return False

        timestamp = ensure_utc(message.timestamp)

        ts_from = filters.get("timestamp_from")
        if isinstance(ts_from, str):
            lower = parse_timestamp(ts_from)
            if lower is not None and timestamp < lower:
                return False

        ts_to = filters.get("timestamp_to")
        if isinstance(ts_to, str):
            upper = parse_timestamp(ts_to)
            if upper is not None and timestamp > upper:
                return False

        return True

    def format_results(self, messages: List[MessagePayload]) -> str:
        blocks = []
        for i, message in enumerate(messages, start=1):
            lines = [
                f"### Message {i}",
                f"**Role:** {message.role}",
                f"**Time:** {ensure_utc(message.timestamp).strftime('%Y-%m-%dT%H:%M:%SZ')}",
                f"**Content:** {message.content}",
            ]
            if message.session_key:
                lines.append(f"**Session:** {message.session_key}")
            blocks.append("\n".join(lines))

        header = f"Found {len(messages)} relevant message(s):\n\n"
        return header + "\n\n---\n\n".join(blocks)
