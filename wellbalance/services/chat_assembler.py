"""Chat turn assembly: prompt + history + tools in, Server-Sent Events out.

Each SSE frame is `data: <json>\\n\\n` with a "type" of start, text-delta,
tool-call, tool-result, error or finish; the stream always ends with
`data: [DONE]`. Nothing is buffered and provider calls are never retried.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Iterable, Optional

import anthropic
import httpx

from config.settings import settings
from wellbalance.models import UIMessage
from wellbalance.services.chat_prompt import build_system_prompt
from wellbalance.services.chat_tools import ToolContext, ToolSet
from wellbalance.services.llm import ChatModel, ModelTurn, TextDelta, ToolCall

logger = logging.getLogger(__name__)

DONE = "data: [DONE]\n\n"


def sse(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


# ---------- history conversion ----------


def _is_tool_part(part: dict) -> bool:
    kind = part.get("type", "")
    return kind == "dynamic-tool" or kind.startswith("tool-")


def _tool_name(part: dict) -> str:
    if part.get("toolName"):
        return part["toolName"]
    return part.get("type", "")[len("tool-"):]


def _convert_message(msg: UIMessage) -> list[dict]:
    """One UI message as zero or more provider messages.

    A completed tool part on an assistant message becomes a tool_use block
    followed by a user message carrying the matching tool_result. Tool parts
    without a toolCallId cannot be paired and are dropped.
    """
    if msg.role == "system":
        return []

    if not msg.parts:
        return [{"role": msg.role, "content": msg.content}] if msg.content else []

    blocks: list[dict] = []
    results: list[dict] = []
    for part in msg.parts:
        if part.get("type") == "text" and part.get("text"):
            blocks.append({"type": "text", "text": part["text"]})
        elif msg.role == "assistant" and _is_tool_part(part) and "output" in part:
            call_id = part.get("toolCallId")
            if not call_id:
                continue
            blocks.append({
                "type": "tool_use",
                "id": call_id,
                "name": _tool_name(part),
                "input": part.get("input") or {},
            })
            results.append({
                "type": "tool_result",
                "tool_use_id": call_id,
                "content": json.dumps(part["output"], ensure_ascii=False),
            })

    out = [{"role": msg.role, "content": blocks}] if blocks else []
    if results:
        out.append({"role": "user", "content": results})
    return out


def _as_blocks(content: Any) -> list[dict]:
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return list(content)


def to_provider_messages(history: Iterable[UIMessage]) -> list[dict]:
    """UI history as alternating user/assistant messages starting with user."""
    messages: list[dict] = []
    for msg in history:
        for converted in _convert_message(msg):
            if messages and messages[-1]["role"] == converted["role"]:
                messages[-1]["content"] = (
                    _as_blocks(messages[-1]["content"]) + _as_blocks(converted["content"])
                )
            else:
                messages.append(converted)

    while messages and messages[0]["role"] != "user":
        messages.pop(0)
    return messages


# ---------- turn ----------


class ChatTurnAssembler:
    def __init__(
        self,
        model: ChatModel,
        tools: ToolSet,
        max_steps: Optional[int] = None,
    ):
        self.model = model
        self.tools = tools
        self.max_steps = max_steps or settings.CHAT_MAX_STEPS

    async def _run_tool(self, call: ToolCall, ctx: ToolContext) -> dict:
        """Run one tool call to completion even if the client goes away."""
        task = asyncio.ensure_future(self.tools.invoke(call.name, call.input, ctx))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await task
            raise

    async def stream(
        self,
        history: list[UIMessage],
        tone: Optional[str],
        ctx: ToolContext,
    ) -> AsyncIterator[str]:
        message_id = str(uuid.uuid4())
        yield sse({"type": "start", "messageId": message_id})

        messages = to_provider_messages(history)
        if not messages:
            yield sse({"type": "error", "errorText": "No conversation to process."})
            yield DONE
            return

        system = build_system_prompt(tone, ctx.today)
        tool_defs = self.tools.to_api_format()
        finish_reason = "max-steps"

        try:
            for step in range(self.max_steps):
                turn: Optional[ModelTurn] = None
                async for event in self.model.stream(system, messages, tool_defs):
                    if isinstance(event, TextDelta):
                        yield sse({"type": "text-delta", "delta": event.text})
                    else:
                        turn = event

                if turn is None or not turn.tool_calls:
                    finish_reason = (turn.stop_reason if turn else None) or "end_turn"
                    break

                logger.info(f"Step {step + 1}: processing {len(turn.tool_calls)} tool calls")
                messages.append(turn.assistant_message())

                tool_results = []
                for call in turn.tool_calls:
                    yield sse({
                        "type": "tool-call",
                        "toolCallId": call.id,
                        "toolName": call.name,
                        "input": call.input,
                    })
                    output = await self._run_tool(call, ctx)
                    yield sse({
                        "type": "tool-result",
                        "toolCallId": call.id,
                        "toolName": call.name,
                        "output": output,
                    })
                    tool_results.append({
                        "type": "tool_result",
                        "tool_use_id": call.id,
                        "content": json.dumps(output, ensure_ascii=False),
                    })
                messages.append({"role": "user", "content": tool_results})
            else:
                logger.warning(f"Chat turn hit the {self.max_steps}-step limit")
        except (anthropic.APIError, httpx.HTTPError) as e:
            logger.error(f"Chat model error: {e}")
            yield sse({"type": "error", "errorText": "The assistant is unavailable right now."})
            yield DONE
            return

        yield sse({"type": "finish", "finishReason": finish_reason})
        yield DONE
