from typing import Any, Dict

from pydantic import BaseModel, Field


class ToolResult(BaseModel):
    """Outcome of a tool call as returned to the agent loop"""

    for_llm: str = Field(..., description="Text handed back to the model")
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(for_llm=message, is_error=True)


ToolArgs = Dict[str, Any]
