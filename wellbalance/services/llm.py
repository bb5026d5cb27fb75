"""Hosted chat model behind a small streaming interface.

A ChatModel yields TextDelta events while the model is writing and ends with
exactly one ModelTurn describing the finished assistant message. The chat
assembler only depends on this interface, so tests plug in a scripted model.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional, Protocol, Union

import anthropic

from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class TextDelta:
    text: str


@dataclass
class ToolCall:
    id: str
    name: str
    input: dict


@dataclass
class ModelTurn:
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: Optional[str] = None
    content: list[dict] = field(default_factory=list)  # assistant message blocks

    def assistant_message(self) -> dict:
        return {"role": "assistant", "content": self.content}


ModelEvent = Union[TextDelta, ModelTurn]


class ChatModel(Protocol):
    def stream(
        self, system: str, messages: list[dict], tools: list[dict]
    ) -> AsyncIterator[ModelEvent]: ...


def _block_to_dict(block: Any) -> dict:
    if block.type == "text":
        return {"type": "text", "text": block.text}
    if block.type == "tool_use":
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    return block.model_dump(exclude_none=True)


class AnthropicChatModel:
    """Claude via the Messages streaming API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.client = anthropic.AsyncAnthropic(api_key=api_key or settings.ANTHROPIC_API_KEY)
        self.model = model or settings.CHAT_MODEL
        self.max_tokens = max_tokens or settings.CHAT_MAX_TOKENS
        self.temperature = settings.CHAT_TEMPERATURE if temperature is None else temperature

    async def stream(
        self, system: str, messages: list[dict], tools: list[dict]
    ) -> AsyncIterator[ModelEvent]:
        async with self.client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=system,
            messages=messages,
            tools=tools,
        ) as stream:
            async for event in stream:
                if event.type == "text":
                    yield TextDelta(event.text)
            final = await stream.get_final_message()

        content = [_block_to_dict(b) for b in final.content]
        turn = ModelTurn(
            text="".join(b["text"] for b in content if b["type"] == "text"),
            tool_calls=[
                ToolCall(id=b["id"], name=b["name"], input=b["input"] or {})
                for b in content if b["type"] == "tool_use"
            ],
            stop_reason=final.stop_reason,
            content=content,
        )
        logger.debug(
            "Model turn finished: stop=%s tool_calls=%d usage=%s",
            turn.stop_reason, len(turn.tool_calls), final.usage,
        )
        yield turn


_model: Optional[ChatModel] = None


def get_chat_model() -> ChatModel:
    """FastAPI dependency; tests override it with a scripted model."""
    global _model
    if _model is None:
        _model = AnthropicChatModel()
    return _model
