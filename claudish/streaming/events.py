"""Canonical (Anthropic-style) SSE event framing."""

import json
import uuid
from typing import Any


def format_event(event_type: str, data: dict[str, Any]) -> bytes:
    """Frame one event as ``event: <type>\\ndata: <json>\\n\\n``."""
    payload = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return f"event: {event_type}\ndata: {payload}\n\n".encode()


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:24]}"


def new_tool_use_id() -> str:
    return f"toolu_{uuid.uuid4().hex[:24]}"


def message_start(
    message_id: str, model: str, input_tokens: int = 0, output_tokens: int = 0
) -> bytes:
    return format_event(
        "message_start",
        {
            "type": "message_start",
            "message": {
                "id": message_id,
                "type": "message",
                "role": "assistant",
                "content": [],
                "model": model,
                "stop_reason": None,
                "stop_sequence": None,
                "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
            },
        },
    )


def ping() -> bytes:
    return format_event("ping", {"type": "ping"})


def content_block_start(index: int, block: dict[str, Any]) -> bytes:
    return format_event(
        "content_block_start",
        {"type": "content_block_start", "index": index, "content_block": block},
    )


def content_block_delta(index: int, delta: dict[str, Any]) -> bytes:
    return format_event(
        "content_block_delta",
        {"type": "content_block_delta", "index": index, "delta": delta},
    )


def content_block_stop(index: int) -> bytes:
    return format_event(
        "content_block_stop", {"type": "content_block_stop", "index": index}
    )


def message_delta(stop_reason: str, input_tokens: int, output_tokens: int) -> bytes:
    return format_event(
        "message_delta",
        {
            "type": "message_delta",
            "delta": {"stop_reason": stop_reason, "stop_sequence": None},
            "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
        },
    )


def message_stop() -> bytes:
    return format_event("message_stop", {"type": "message_stop"})


def error_event(message: str, error_type: str = "api_error") -> bytes:
    return format_event(
        "error", {"type": "error", "error": {"type": error_type, "message": message}}
    )
