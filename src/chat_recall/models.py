from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FunctionCall(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    id: str
    type: str = "function"
    name: Optional[str] = None
    function: Optional[FunctionCall] = None


class Message(BaseModel):
    """A single chat message as exchanged with the LLM provider"""

    role: Literal["user", "assistant", "system", "tool"]
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = Field(
        default=None, description="Tool invocations requested by an assistant turn"
    )
    tool_call_id: Optional[str] = Field(
        default=None, description="ID of the tool call this message answers (role=tool)"
    )


class Session(BaseModel):
    """Ordered message history for one conversation key"""

    key: str
    messages: List[Message] = Field(default_factory=list)
    summary: str = ""
    created: datetime = Field(default_factory=utc_now)
    updated: datetime = Field(default_factory=utc_now)


class MessagePayload(BaseModel):
    """Metadata stored alongside each message vector"""

    session_key: str
    role: str
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    message_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible map for the vector database payload."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "MessagePayload":
        return cls.model_validate(payload)

    def to_message(self) -> Message:
        return Message(role=self.role, content=self.content)


class StoredMessage(BaseModel):
    """A message queued for storage in the semantic index"""

    session_key: str
    message: Message
    timestamp: datetime = Field(default_factory=utc_now)
    index: int = 0
