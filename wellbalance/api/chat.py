"""Chat assistant API: POST /api/v1/chat streams Server-Sent Events."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from wellbalance.auth import get_current_user_id
from wellbalance.clock import Clock, get_clock
from wellbalance.db import engine as db_engine
from wellbalance.models import ChatRequest
from wellbalance.services.chat_assembler import ChatTurnAssembler
from wellbalance.services.chat_tools import ToolContext, default_tools
from wellbalance.services.llm import ChatModel, get_chat_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post("/chat")
async def chat(
    body: ChatRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
    model: ChatModel = Depends(get_chat_model),
):
    """One assistant turn. Signing in is optional; personal-data tools
    report an error to the model when there is no user."""
    today = clock.today()
    assembler = ChatTurnAssembler(model, default_tools())
    logger.info("Chat turn: user=%s messages=%d tone=%s", user_id, len(body.messages), body.tone)

    async def stream():
        # The request-scoped session is gone once the response starts.
        async with db_engine.async_session() as session:
            ctx = ToolContext(session=session, user_id=user_id, today=today)
            async for chunk in assembler.stream(body.messages, body.tone, ctx):
                yield chunk

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
