"""Tests for the chat turn assembler and POST /api/v1/chat."""
from __future__ import annotations

import asyncio
import json

import anthropic
import httpx
import pytest
from pydantic import BaseModel

from tests.conftest import TODAY
from wellbalance.api.main import app
from wellbalance.clock import FixedClock
from wellbalance.models import MealAmounts, UIMessage
from wellbalance.services.chat_assembler import ChatTurnAssembler, to_provider_messages
from wellbalance.services.chat_tools import ToolContext, ToolDefinition, ToolSet, default_tools
from wellbalance.services.daily_log import add_meal_amounts
from wellbalance.services.llm import ModelTurn, TextDelta, ToolCall, get_chat_model


class ScriptedModel:
    """Plays back one scripted list of events per model call and records requests."""

    def __init__(self, *steps):
        self.steps = list(steps)
        self.calls = []

    async def stream(self, system, messages, tools):
        self.calls.append({
            "system": system,
            "messages": json.loads(json.dumps(messages)),
            "tools": tools,
        })
        for event in self.steps.pop(0):
            if isinstance(event, Exception):
                raise event
            yield event


def text_turn(*chunks):
    text = "".join(chunks)
    return [TextDelta(c) for c in chunks] + [
        ModelTurn(text=text, stop_reason="end_turn", content=[{"type": "text", "text": text}])
    ]


def tool_turn(call_id, name, tool_input):
    return [ModelTurn(
        tool_calls=[ToolCall(id=call_id, name=name, input=tool_input)],
        stop_reason="tool_use",
        content=[{"type": "tool_use", "id": call_id, "name": name, "input": tool_input}],
    )]


def parse_sse(body: str) -> list:
    events = []
    for frame in body.split("\n\n"):
        if not frame.startswith("data: "):
            continue
        data = frame[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


async def collect(assembler, history, tone, ctx) -> list:
    return parse_sse("".join([chunk async for chunk in assembler.stream(history, tone, ctx)]))


def user_says(text: str) -> list[UIMessage]:
    return [UIMessage(role="user", parts=[{"type": "text", "text": text}])]


# ── history conversion ───────────────────────────────────────────────────────

def test_convert_plain_content_and_parts():
    history = [
        UIMessage(role="system", content="ignored"),
        UIMessage(role="assistant", content="Hi! How can I help?"),
        UIMessage(role="user", content="Weather in Oslo?"),
        UIMessage(role="assistant", parts=[
            {"type": "text", "text": "Let me check."},
            {"type": "tool-checkWeather", "toolCallId": "t1", "state": "output-available",
             "input": {"city": "Oslo"}, "output": {"type": "weather", "city": "Oslo"}},
        ]),
        UIMessage(role="user", parts=[{"type": "text", "text": "Thanks"}]),
    ]
    messages = to_provider_messages(history)

    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[0]["content"] == "Weather in Oslo?"
    assert messages[1]["content"][1] == {
        "type": "tool_use", "id": "t1", "name": "checkWeather", "input": {"city": "Oslo"},
    }
    tool_result, follow_up = messages[2]["content"]
    assert tool_result["type"] == "tool_result"
    assert tool_result["tool_use_id"] == "t1"
    assert follow_up == {"type": "text", "text": "Thanks"}


def test_convert_skips_unfinished_tool_parts():
    history = [
        UIMessage(role="user", content="hi"),
        UIMessage(role="assistant", parts=[
            {"type": "tool-base64", "toolCallId": "t9", "state": "input-available", "input": {}},
        ]),
    ]
    assert to_provider_messages(history) == [{"role": "user", "content": "hi"}]


REPLAYED_WITHOUT_CALL_ID = [
    UIMessage(role="user", content="hi"),
    UIMessage(role="assistant", parts=[
        {"type": "tool-base64", "input": {}, "output": {"x": 1}},
    ]),
    UIMessage(role="user", content="again"),
]


def test_convert_drops_tool_parts_without_call_id():
    assert to_provider_messages(REPLAYED_WITHOUT_CALL_ID) == [{
        "role": "user",
        "content": [{"type": "text", "text": "hi"}, {"type": "text", "text": "again"}],
    }]


# ── assembler ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_text_only_turn(session):
    model = ScriptedModel(text_turn("Hello", " there"))
    ctx = ToolContext(session=session, user_id=None, today=TODAY)

    events = await collect(ChatTurnAssembler(model, default_tools()), user_says("hi"), "casual", ctx)

    assert [e if e == "[DONE]" else e["type"] for e in events] == [
        "start", "text-delta", "text-delta", "finish", "[DONE]",
    ]
    assert events[1]["delta"] == "Hello"
    assert events[3]["finishReason"] == "end_turn"

    call = model.calls[0]
    assert call["system"].startswith("You are a friendly, informal assistant.")
    assert "ISO 2026-10-18" in call["system"]
    assert {t["name"] for t in call["tools"]} == {"checkWeather", "base64", "getDailySummary", "getUserTargets"}


@pytest.mark.asyncio
async def test_tool_loop_feeds_results_back(session, user):
    await add_meal_amounts(session, user.id, MealAmounts(calories=1500, protein_g=90), FixedClock(TODAY))
    model = ScriptedModel(
        tool_turn("call-1", "getDailySummary", {}),
        text_turn("You have eaten 1500 kcal today."),
    )
    ctx = ToolContext(session=session, user_id=user.id, today=TODAY)

    events = await collect(
        ChatTurnAssembler(model, default_tools()), user_says("How much did I eat?"), None, ctx
    )
    kinds = [e if e == "[DONE]" else e["type"] for e in events]
    assert kinds == ["start", "tool-call", "tool-result", "text-delta", "finish", "[DONE]"]

    assert events[1] == {"type": "tool-call", "toolCallId": "call-1", "toolName": "getDailySummary", "input": {}}
    assert events[2]["output"]["total_calories"] == 1500

    second = model.calls[1]["messages"]
    assert second[-2]["role"] == "assistant"
    assert second[-2]["content"][0]["type"] == "tool_use"
    result_block = second[-1]["content"][0]
    assert result_block["tool_use_id"] == "call-1"
    assert json.loads(result_block["content"])["total_calories"] == 1500


@pytest.mark.asyncio
async def test_tool_error_is_relayed_not_raised(session):
    model = ScriptedModel(
        tool_turn("call-1", "getDailySummary", {}),
        text_turn("I can't access your personal data."),
    )
    ctx = ToolContext(session=session, user_id=None, today=TODAY)

    events = await collect(ChatTurnAssembler(model, default_tools()), user_says("calories?"), None, ctx)
    result = next(e for e in events if e != "[DONE]" and e["type"] == "tool-result")
    assert result["output"] == {"type": "daily_summary", "error": "User is not authenticated."}
    assert events[-2]["type"] == "finish"


@pytest.mark.asyncio
async def test_step_limit(session):
    model = ScriptedModel(*[tool_turn(f"c{i}", "base64", {"direction": "encode", "value": "x"}) for i in range(3)])
    ctx = ToolContext(session=session, user_id=None, today=TODAY)

    events = await collect(ChatTurnAssembler(model, default_tools(), max_steps=2), user_says("loop"), None, ctx)
    assert len(model.calls) == 2
    assert events[-2] == {"type": "finish", "finishReason": "max-steps"}


@pytest.mark.asyncio
async def test_provider_failure_mid_stream(session):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    model = ScriptedModel([TextDelta("Partial"), anthropic.APIConnectionError(request=request)])
    ctx = ToolContext(session=session, user_id=None, today=TODAY)

    events = await collect(ChatTurnAssembler(model, default_tools()), user_says("hi"), None, ctx)
    kinds = [e if e == "[DONE]" else e["type"] for e in events]
    assert kinds == ["start", "text-delta", "error", "[DONE]"]
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_empty_history(session):
    model = ScriptedModel()
    ctx = ToolContext(session=session, user_id=None, today=TODAY)
    events = await collect(ChatTurnAssembler(model, default_tools()), [], None, ctx)
    assert events[1]["type"] == "error"
    assert model.calls == []


@pytest.mark.asyncio
async def test_history_with_unpaired_tool_part_still_completes(session):
    model = ScriptedModel(text_turn("Hello again"))
    ctx = ToolContext(session=session, user_id=None, today=TODAY)

    events = await collect(ChatTurnAssembler(model, default_tools()), REPLAYED_WITHOUT_CALL_ID, None, ctx)
    kinds = [e if e == "[DONE]" else e["type"] for e in events]
    assert kinds == ["start", "text-delta", "finish", "[DONE]"]


class NoInput(BaseModel):
    pass


@pytest.mark.asyncio
async def test_client_abort_lets_dispatched_tool_finish(session):
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def slow_tool(ctx, args):
        started.set()
        await release.wait()
        finished.append("slowTool")
        return {"ok": True}

    tools = ToolSet([
        ToolDefinition(name="slowTool", description="Waits.", input_model=NoInput, handler=slow_tool),
    ])
    model = ScriptedModel(tool_turn("call-1", "slowTool", {}), text_turn("never sent"))
    ctx = ToolContext(session=session, user_id=None, today=TODAY)
    frames = []

    async def consume():
        async for chunk in ChatTurnAssembler(model, tools).stream(user_says("go"), None, ctx):
            frames.append(chunk)

    consumer = asyncio.create_task(consume())
    await started.wait()
    consumer.cancel()
    await asyncio.sleep(0)
    assert not consumer.done()

    release.set()
    with pytest.raises(asyncio.CancelledError):
        await consumer

    assert finished == ["slowTool"]
    assert len(model.calls) == 1
    kinds = [e if e == "[DONE]" else e["type"] for e in parse_sse("".join(frames))]
    assert kinds == ["start", "tool-call"]


# ── HTTP ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def scripted_model():
    holder = {}

    def install(*steps):
        holder["model"] = ScriptedModel(*steps)
        app.dependency_overrides[get_chat_model] = lambda: holder["model"]
        return holder["model"]

    yield install
    app.dependency_overrides.pop(get_chat_model, None)


@pytest.mark.asyncio
async def test_chat_endpoint_streams_sse(client, auth_headers, scripted_model):
    scripted_model(
        tool_turn("call-1", "getUserTargets", {}),
        text_turn("Your goal is 2000 kcal."),
    )
    resp = await client.post(
        "/api/v1/chat",
        json={"messages": [{"role": "user", "parts": [{"type": "text", "text": "What is my goal?"}]}], "tone": "formal"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")

    events = parse_sse(resp.text)
    assert events[-1] == "[DONE]"
    result = next(e for e in events if e != "[DONE]" and e["type"] == "tool-result")
    assert result["output"]["daily_calories"] == 2000


@pytest.mark.asyncio
async def test_chat_endpoint_anonymous(client, scripted_model):
    model = scripted_model(text_turn("Arrr, hello matey!"))
    resp = await client.post(
        "/api/v1/chat",
        json={"messages": [{"role": "user", "content": "hello"}], "tone": "pirate"},
    )
    assert resp.status_code == 200
    assert [e["delta"] for e in parse_sse(resp.text) if e != "[DONE]" and e["type"] == "text-delta"] == ["Arrr, hello matey!"]
    assert model.calls[0]["system"].startswith("You are a humorous pirate assistant.")
