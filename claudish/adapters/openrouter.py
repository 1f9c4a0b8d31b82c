"""Adapter for OpenRouter, wrapping the adapter of the routed model family."""

from typing import Any

from claudish.models.payloads import OpenAIChatMessage, OpenAIChatPayload
from claudish.models.requests import MessageRequest

from .base import AdapterResult, MessageFilter, ModelAdapter, remove_uri_format
from .openai import DefaultAdapter
from .openai_format import convert_tools_to_openai


GROK_TOOL_HINT = (
    "IMPORTANT: When calling tools, you MUST use the OpenAI tool_calls format "
    "with JSON. NEVER use XML format like <xai:function_call>."
)

GEMINI_OUTPUT_HINT = """CRITICAL INSTRUCTION FOR OUTPUT FORMAT:
1. Keep ALL internal reasoning INTERNAL. Never output your thought process as visible text.
2. Do NOT start responses with phrases like "Wait, I'm...", "Let me think...", "Okay, so...", "First, I need to..."
3. Do NOT output numbered planning steps or internal debugging statements.
4. Only output: final responses, tool calls, and code. Nothing else.
5. When calling tools, proceed directly without announcing your intentions.
6. Your internal thinking should use the reasoning/thinking API, not visible text output."""

_REASONING_FAMILIES = ("o1", "o3", "r1", "qwq", "reasoning")


class OpenRouterAdapter(DefaultAdapter):
    """Chat-completions payloads for OpenRouter.

    Streamed text goes through ``inner`` (the adapter the model family
    would get on its own), so family-specific text filters still apply.
    """

    name = "openrouter"

    def __init__(self, model_id: str, inner: ModelAdapter) -> None:
        super().__init__(model_id)
        self.inner = inner

    def should_handle(self, model_id: str) -> bool:
        return False

    def process_text_content(
        self, text_content: str, accumulated_text: str
    ) -> AdapterResult:
        return self.inner.process_text_content(text_content, accumulated_text)

    def flush(self) -> str:
        return self.inner.flush()

    def reset(self) -> None:
        self.inner.reset()

    def supports_reasoning(self) -> bool:
        model = self.model_id.lower()
        return any(family in model for family in _REASONING_FAMILIES)

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Any]:
        messages = super().convert_messages(request, message_filter)
        if "grok" in self.model_id or "x-ai" in self.model_id:
            messages = _append_system(messages, GROK_TOOL_HINT)
        if "gemini" in self.model_id or "google/" in self.model_id:
            messages = _append_system(messages, GEMINI_OUTPUT_HINT)
        return messages

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[Any]:
        tools = convert_tools_to_openai(request, summarize)
        return [
            tool.model_copy(
                update={
                    "function": tool.function.model_copy(
                        update={"parameters": remove_uri_format(tool.function.parameters)}
                    )
                }
            )
            for tool in tools
        ]

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> OpenAIChatPayload:
        payload = super().build_payload(request, messages, tools)
        updates: dict[str, Any] = {}
        if self.supports_reasoning():
            updates["include_reasoning"] = True
        if request.thinking is not None:
            updates["thinking"] = request.thinking.model_dump(mode="json", exclude_none=True)
        return payload.model_copy(update=updates) if updates else payload

    def get_context_window(self) -> int:
        return self.inner.get_context_window()

    def supports_vision(self) -> bool:
        return self.inner.supports_vision()


def _append_system(
    messages: list[OpenAIChatMessage], text: str
) -> list[OpenAIChatMessage]:
    if messages and messages[0].role == "system" and isinstance(messages[0].content, str):
        first = messages[0].model_copy(
            update={"content": f"{messages[0].content}\n\n{text}"}
        )
        return [first, *messages[1:]]
    return [OpenAIChatMessage(role="system", content=text), *messages]
