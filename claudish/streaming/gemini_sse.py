"""Gemini ``streamGenerateContent?alt=sse`` → canonical SSE."""

import json
from collections.abc import Callable
from typing import Any

import structlog

from . import events
from .base import CanonicalStreamParser, StreamFormat, parse_data_line


logger = structlog.get_logger(__name__)

ToolCallCallback = Callable[[str, str, str | None], None]


class GeminiSSEParser(CanonicalStreamParser):
    """Maps candidate parts onto canonical content blocks.

    Function calls arrive whole, so each becomes a complete ``tool_use``
    block. ``on_tool_call`` receives (id, name, thought signature) so the
    adapter can echo the signature on the next turn. Code Assist wraps
    every frame in ``{"response": {...}}`` (``unwrap_response``).
    """

    stream_format = StreamFormat.GEMINI_SSE

    def __init__(
        self,
        *args: Any,
        on_tool_call: ToolCallCallback | None = None,
        unwrap_response: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.on_tool_call = on_tool_call
        self.unwrap_response = unwrap_response

    def handle_line(self, line: str) -> list[bytes]:
        if not line.startswith("data:"):
            return []
        if line[5:].strip() == "[DONE]":
            return self.finish()

        chunk = parse_data_line(line)
        if not isinstance(chunk, dict):
            return []
        if self.unwrap_response and isinstance(chunk.get("response"), dict):
            chunk = chunk["response"]

        if isinstance(chunk.get("error"), dict):
            return self.fail(chunk["error"].get("message") or "upstream error")

        metadata = chunk.get("usageMetadata")
        if isinstance(metadata, dict):
            self.usage.observe(
                metadata.get("promptTokenCount"), metadata.get("candidatesTokenCount")
            )

        out: list[bytes] = []
        candidates = chunk.get("candidates") or []
        candidate = candidates[0] if candidates and isinstance(candidates[0], dict) else {}
        parts = (candidate.get("content") or {}).get("parts") or []
        for part in parts:
            if isinstance(part, dict):
                out.extend(self._handle_part(part))

        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            self.stop_reason = "max_tokens"
        if finish_reason in ("STOP", "MAX_TOKENS"):
            out.extend(self.finish())
        return out

    def _handle_part(self, part: dict[str, Any]) -> list[bytes]:
        thought = part.get("thought")
        if thought is True:
            return self.emit_thinking(part.get("text") or "")
        if isinstance(thought, str):
            return self.emit_thinking(thought)
        if isinstance(part.get("thoughtText"), str):
            return self.emit_thinking(part["thoughtText"])

        out: list[bytes] = []
        if isinstance(part.get("text"), str):
            out.extend(self.emit_text(part["text"]))

        call = part.get("functionCall")
        if isinstance(call, dict) and call.get("name"):
            tool_id = events.new_tool_use_id()
            signature = part.get("thoughtSignature")
            if self.on_tool_call is not None:
                self.on_tool_call(tool_id, call["name"], signature)
            out.extend(
                self.emit_complete_tool(tool_id, call["name"], call.get("args") or {})
            )
            logger.debug(
                "gemini_function_call",
                tool=call["name"],
                has_signature=signature is not None,
                args_size=len(json.dumps(call.get("args") or {})),
            )
        return out
