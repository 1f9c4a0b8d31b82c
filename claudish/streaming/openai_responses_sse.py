"""OpenAI Responses API SSE (Codex models) → canonical SSE."""

from typing import Any

import structlog

from .base import CanonicalStreamParser, StreamFormat, parse_data_line


logger = structlog.get_logger(__name__)


def _tool_use_id(call_id: str) -> str:
    if call_id.startswith("toolu_"):
        return call_id
    return "toolu_" + call_id.removeprefix("fc_")


class OpenAIResponsesSSEParser(CanonicalStreamParser):
    """Maps typed Responses events onto canonical content blocks.

    Function calls are announced by ``response.output_item.added`` and
    their arguments stream as ``response.function_call_arguments.delta``
    events that reference either the item id or the call id, so both are
    registered for the same block. Usage arrives on ``response.completed``.
    """

    stream_format = StreamFormat.OPENAI_RESPONSES_SSE

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._aliases: dict[str, str] = {}

    def handle_line(self, line: str) -> list[bytes]:
        event = parse_data_line(line)
        if not isinstance(event, dict):
            return []
        event_type = event.get("type")

        if event_type == "response.output_text.delta":
            return self.emit_text(event.get("delta") or "")
        if event_type == "response.reasoning_summary_text.delta":
            return self.emit_thinking(event.get("delta") or "")
        if event_type == "response.output_item.added":
            return self._item_added(event.get("item") or {})
        if event_type == "response.function_call_arguments.delta":
            key = self._key(event.get("call_id") or event.get("item_id"))
            return self.tool_arguments(key, event.get("delta") or "")
        if event_type == "response.output_item.done":
            item = event.get("item") or {}
            if item.get("type") != "function_call":
                return []
            return self.close_tool(self._key(item.get("call_id") or item.get("id")))
        if event_type in ("response.completed", "response.done", "response.incomplete"):
            if event_type == "response.incomplete":
                logger.warning(
                    "responses_stream_incomplete",
                    model=self.model,
                    reason=(event.get("response") or {}).get("incomplete_details"),
                )
                self.stop_reason = "max_tokens"
            self._observe_usage(event)
            return []
        if event_type in ("error", "response.failed"):
            error = event.get("error") or (event.get("response") or {}).get("error") or {}
            message = error.get("message") or event.get("message") or "upstream error"
            logger.warning("responses_stream_error", model=self.model, message=message)
            return self.fail(message)
        return []

    def _item_added(self, item: dict[str, Any]) -> list[bytes]:
        if item.get("type") != "function_call":
            return []
        item_id = item.get("id")
        call_id = item.get("call_id") or item_id
        if not call_id:
            return []
        if item_id and item_id != call_id:
            self._aliases[item_id] = call_id
        return self.start_tool(call_id, _tool_use_id(call_id), item.get("name") or "")

    def _key(self, reference: str | None) -> str | None:
        if reference is None:
            return None
        return self._aliases.get(reference, reference)

    def _observe_usage(self, event: dict[str, Any]) -> None:
        usage = (event.get("response") or {}).get("usage") or event.get("usage")
        if isinstance(usage, dict):
            self.usage.observe(usage.get("input_tokens"), usage.get("output_tokens"))
