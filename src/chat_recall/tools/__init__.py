"""Agent-facing tools backed by the session and message stores."""

from chat_recall.tools.base import ToolResult
from chat_recall.tools.memory_search import MemorySearchTool, clamp_limit
from chat_recall.tools.session import SessionTool

__all__ = [
    "ToolResult",
    "MemorySearchTool",
    "SessionTool",
    "clamp_limit",
]
