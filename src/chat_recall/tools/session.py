import logging
from typing import Any, Dict, List, Optional

from chat_recall.models import Message
from chat_recall.sessions.manager import SessionManager
from chat_recall.tools.base import ToolArgs, ToolResult

logger = logging.getLogger(__name__)


def estimate_tokens(messages: List[Message]) -> int:
    """Rough token count at 2.5 characters per token (conservative for CJK text)."""
    total_chars = sum(len(message.content) for message in messages)
    return total_chars * 2 // 5


class SessionTool:
    name = "session"
    description = (
        "Manage the current conversation session: clear history or get session stats. "
        "Use /clear to start a new session or /stats to see current session info."
    )

    def __init__(self, session_manager: Optional[SessionManager] = None, context_window: int = 0):
        self.session_manager = session_manager
        self.context_window = context_window
        self.session_key = ""

    @property
    def parameters(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["clear", "stats"],
                    "description": "Action to perform: 'clear' to clear the current session history, 'stats' to show session information",
                },
            },
            "required": ["action"],
        }

    def set_session_key(self, session_key: str) -> None:
        self.session_key = session_key

    def execute(self, args: ToolArgs) -> ToolResult:
        action = args.get("action")
        if not isinstance(action, str):
            return ToolResult.error("action is required (clear or stats)")
        if self.session_manager is None:
            return ToolResult.error("Session manager not available")
        if not self.session_key:
            return ToolResult.error("No current session")

        if action == "clear":
            self.session_manager.truncate_history(self.session_key, 0)
            logger.info(f"Session {self.session_key} cleared")
            return ToolResult(for_llm="Session cleared successfully. Starting a new conversation!")
        if action == "stats":
            return ToolResult(for_llm=self._stats())
        return ToolResult.error(f"Unknown action: {action}. Use 'clear' or 'stats'")

    def _stats(self) -> str:
        history = self.session_manager.get_history(self.session_key)
        message_count = len(history)
        tokens = estimate_tokens(history)

        if message_count == 0:
            stats = "Session Stats\n\nMessages: 0\nTokens: 0 (est.)"
            if self.context_window > 0:
                stats += f"\nContext: 0% / {self.context_window} tokens"
            return stats

        stats = f"Session Stats\n\nMessages: {message_count}\nTokens: ~{tokens} (est.)"
        if self.context_window > 0:
            percent = tokens / self.context_window * 100
            stats += f"\nContext: {percent:.1f}% / {self.context_window} tokens"
        return stats
