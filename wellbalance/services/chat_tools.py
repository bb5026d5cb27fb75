"""Tools the chat model may call during a turn.

Each tool has a JSON schema for the model and an async handler. Handlers
report failures inside their own result dict ({"type": ..., "error": ...});
ToolSet.invoke never raises, so one bad tool call cannot end the stream.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings, settings as default_settings
from wellbalance.clock import FixedClock
from wellbalance.errors import AuthenticationRequired, InvalidDate
from wellbalance.models import TargetsSource
from wellbalance.services.daily_log import get_daily_summary
from wellbalance.services.targets import get_targets
from wellbalance.services.weather import fetch_weather

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Per-request state handed to every tool handler."""
    session: AsyncSession
    user_id: Optional[str]
    today: date
    settings: Settings = field(default_factory=lambda: default_settings)


ToolHandler = Callable[..., Awaitable[dict]]


@dataclass
class ToolDefinition:
    """Model-facing tool definition + handler."""

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    @property
    def input_schema(self) -> dict:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        return schema

    def to_api_format(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


# ---------- checkWeather ----------


class Units(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class WeatherInput(BaseModel):
    city: str = Field(description='City name, e.g. "Berlin" or "London".')
    units: Units = Field(
        Units.METRIC,
        description='Temperature units: "metric" for Celsius, "imperial" for Fahrenheit.',
    )


async def check_weather(ctx: ToolContext, args: WeatherInput) -> dict:
    return await fetch_weather(
        args.city,
        units=args.units.value,
        api_key=ctx.settings.OPENWEATHER_API_KEY or "",
        base_url=ctx.settings.OPENWEATHER_BASE_URL,
    )


# ---------- base64 ----------


class Direction(str, Enum):
    ENCODE = "encode"
    DECODE = "decode"


class Base64Input(BaseModel):
    direction: Direction
    value: str = Field(description="The input text or Base64 string.")


_WHITESPACE = re.compile(r"\s+")


def encode_base64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def decode_base64(value: str) -> str:
    """Decode base64 text. Missing padding is tolerated and bytes that are
    not UTF-8 become U+FFFD; characters outside the alphabet raise ValueError."""
    compact = _WHITESPACE.sub("", value).rstrip("=")
    if len(compact) % 4 == 1:
        raise ValueError("truncated base64 input")
    padded = compact + "=" * (-len(compact) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except binascii.Error as e:
        raise ValueError(str(e)) from e
    return raw.decode("utf-8", errors="replace")


async def base64_codec(ctx: ToolContext, args: Base64Input) -> dict:
    result: dict[str, Any] = {
        "type": "base64",
        "direction": args.direction.value,
        "input": args.value,
    }
    if args.direction == Direction.ENCODE:
        result["result"] = encode_base64(args.value)
        return result
    try:
        result["result"] = decode_base64(args.value)
    except ValueError:
        result["error"] = "Invalid base64 string for decoding."
    return result


# ---------- getDailySummary ----------


class DailySummaryInput(BaseModel):
    date: Optional[str] = Field(None, description="ISO date YYYY-MM-DD. If omitted, use today.")


async def daily_summary_tool(ctx: ToolContext, args: DailySummaryInput) -> dict:
    try:
        summary = await get_daily_summary(
            ctx.session, ctx.user_id, FixedClock(ctx.today), args.date
        )
    except AuthenticationRequired as e:
        return {"type": "daily_summary", "error": e.message}
    except InvalidDate as e:
        return {"type": "daily_summary", "error": str(e)}
    except SQLAlchemyError:
        await ctx.session.rollback()
        logger.exception("getDailySummary failed for user %s", ctx.user_id)
        return {"type": "daily_summary", "error": "Failed to load daily summary."}
    return {"type": "daily_summary", **summary.model_dump()}


# ---------- getUserTargets ----------


class UserTargetsInput(BaseModel):
    pass


TARGET_NOTES = {
    TargetsSource.DEFAULT: "No personal targets saved yet; using default targets.",
    TargetsSource.FALLBACK: "Using default targets due to load error.",
}


async def user_targets_tool(ctx: ToolContext, args: UserTargetsInput) -> dict:
    targets = await get_targets(ctx.session, ctx.user_id)
    result = {"type": "user_targets", **targets.model_dump(exclude={"source"})}
    if not ctx.user_id:
        result["note"] = "User is not signed in; these are the default targets."
    elif targets.source in TARGET_NOTES:
        result["note"] = TARGET_NOTES[targets.source]
    return result


# ---------- registry ----------


class ToolSet:
    """Fixed tool registry for one chat turn."""

    def __init__(self, tools: list[ToolDefinition]):
        self.tools = {t.name: t for t in tools}

    def to_api_format(self) -> list[dict]:
        return [t.to_api_format() for t in self.tools.values()]

    async def invoke(self, name: str, tool_input: Any, ctx: ToolContext) -> dict:
        tool = self.tools.get(name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {name}")
            return {"error": f"Unknown tool: {name}"}
        try:
            args = tool.input_model.model_validate(tool_input or {})
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e.errors()}")
            return {"error": f"Invalid arguments for {name}."}

        logger.info(f"Executing tool: {name}")
        try:
            return await tool.handler(ctx, args)
        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return {"error": f"Tool {name} failed: {type(e).__name__}"}


def default_tools() -> ToolSet:
    return ToolSet([
        ToolDefinition(
            name="checkWeather",
            description="Get the current weather in a city using OpenWeatherMap.",
            input_model=WeatherInput,
            handler=check_weather,
        ),
        ToolDefinition(
            name="base64",
            description='Encode or decode text using Base64. Use direction "encode" or "decode".',
            input_model=Base64Input,
            handler=base64_codec,
        ),
        ToolDefinition(
            name="getDailySummary",
            description=(
                "Get the total calories and macros for the current user for a given date. "
                "If no date is provided, use today."
            ),
            input_model=DailySummaryInput,
            handler=daily_summary_tool,
        ),
        ToolDefinition(
            name="getUserTargets",
            description="Get the daily calorie and macronutrient targets for the current user.",
            input_model=UserTargetsInput,
            handler=user_targets_tool,
        ),
    ])
