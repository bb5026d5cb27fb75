"""Chat request models: the client's UI message history."""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UIMessage(BaseModel):
    """One transcript entry as the chat widget stores it.

    Either `parts` (text and tool parts) or a plain `content` string.
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    role: Literal["system", "user", "assistant"]
    content: Optional[str] = None
    parts: list[dict[str, Any]] = Field(default_factory=list)


class ChatRequest(BaseModel):
    messages: list[UIMessage] = Field(default_factory=list)
    tone: Optional[str] = None
