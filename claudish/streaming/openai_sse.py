"""OpenAI chat-completions SSE → canonical SSE."""

from typing import Any

import structlog

from . import events
from .base import CanonicalStreamParser, StreamFormat, parse_data_line


logger = structlog.get_logger(__name__)

_FINISH_REASONS = {"length": "max_tokens", "tool_calls": "tool_use", "stop": "end_turn"}


class OpenAISSEParser(CanonicalStreamParser):
    """Maps ``choices[0].delta`` chunks onto canonical content blocks.

    ``finish_reason`` only records the stop reason: with
    ``stream_options.include_usage`` the usage chunk arrives after it, so
    the message is finalized on ``[DONE]`` or end of body.
    """

    stream_format = StreamFormat.OPENAI_SSE

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._tool_ids: dict[int, str] = {}

    def handle_line(self, line: str) -> list[bytes]:
        if not line.startswith("data:"):
            return []
        if line[5:].strip() == "[DONE]":
            return self.finish()

        chunk = parse_data_line(line)
        if not isinstance(chunk, dict):
            return []

        if isinstance(chunk.get("error"), dict):
            message = chunk["error"].get("message") or "upstream error"
            logger.warning("openai_stream_error_chunk", model=self.model, message=message)
            return self.fail(message)

        usage = chunk.get("usage")
        if isinstance(usage, dict):
            self.usage.observe(usage.get("prompt_tokens"), usage.get("completion_tokens"))

        out: list[bytes] = []
        choices = chunk.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return out
        choice = choices[0]
        delta = choice.get("delta") or {}

        reasoning = delta.get("reasoning_content") or delta.get("reasoning")
        if isinstance(reasoning, str):
            out.extend(self.emit_thinking(reasoning))

        content = delta.get("content")
        if isinstance(content, str) and content:
            out.extend(self.emit_text(content))

        for call in delta.get("tool_calls") or []:
            out.extend(self._tool_call_delta(call))

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.stop_reason = _FINISH_REASONS.get(finish_reason, "end_turn")
        return out

    def _tool_call_delta(self, call: dict[str, Any]) -> list[bytes]:
        index = call.get("index", 0)
        function = call.get("function") or {}
        out: list[bytes] = []
        if index not in self._tool_ids:
            name = function.get("name")
            if not name:
                return out
            tool_id = call.get("id") or events.new_tool_use_id()
            self._tool_ids[index] = tool_id
            out.extend(self.start_tool(index, tool_id, name))
        arguments = function.get("arguments")
        if isinstance(arguments, str):
            out.extend(self.tool_arguments(index, arguments))
        return out
