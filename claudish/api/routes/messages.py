"""Anthropic Messages endpoints."""

import json
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from claudish.api.dependencies import GatewayDep
from claudish.core.logging import get_logger
from claudish.gateway import UpstreamStream
from claudish.models.requests import MessageRequest


router = APIRouter(tags=["messages"])
logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class TokenCountResponse(BaseModel):
    input_tokens: int


async def _relay(upstream: UpstreamStream) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.events():
            yield chunk
    finally:
        await upstream.aclose()


@router.post("/v1/messages")
async def create_message(request: MessageRequest, gateway: GatewayDep) -> StreamingResponse:
    """Stream a message from whichever provider the model routes to.

    Responses are always streamed. Failures before the upstream accepts the
    request surface as an error response; later ones as ``error`` events.
    """
    upstream = await gateway.open_stream(request)
    # Also closes the upstream when the body is never iterated
    return StreamingResponse(
        _relay(upstream),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(upstream.aclose),
    )


@router.post("/v1/messages/count_tokens")
async def count_tokens(body: dict[str, Any]) -> TokenCountResponse:
    """Rough token estimate: serialized characters divided by four."""
    parts: list[Any] = [body.get("system"), body.get("messages"), body.get("tools")]
    characters = sum(
        len(part if isinstance(part, str) else json.dumps(part))
        for part in parts
        if part
    )
    return TokenCountResponse(input_tokens=max(1, characters // 4))
