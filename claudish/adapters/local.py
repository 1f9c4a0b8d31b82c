"""Adapter for local OpenAI-compatible servers (Ollama, LM Studio, vLLM, MLX)."""

import json
import uuid
from dataclasses import dataclass
from typing import Any

import structlog

from claudish.models.payloads import OpenAIChatPayload
from claudish.models.requests import MessageRequest

from .base import AdapterResult, MessageFilter, ToolCall
from .openai import DefaultAdapter


logger = structlog.get_logger(__name__)

MIN_LOCAL_MAX_TOKENS = 8192
DEFAULT_LOCAL_CONTEXT_WINDOW = 32768

TOOL_CALL_OPEN = "<tool_call>"
TOOL_CALL_CLOSE = "</tool_call>"

LOCAL_SYSTEM_GUIDANCE = """

IMPORTANT INSTRUCTIONS FOR THIS MODEL:
- NEVER output your internal reasoning as visible text. Only output your final response, actions, or tool calls.
- When you see tool results, continue working toward the ORIGINAL user request instead of asking what to do.
- When calling tools, include ALL required parameters."""


@dataclass(frozen=True)
class SamplingParams:
    temperature: float
    top_p: float
    top_k: int
    min_p: float
    repetition_penalty: float


_SAMPLING: list[tuple[str, SamplingParams]] = [
    ("qwen", SamplingParams(0.7, 0.8, 20, 0.0, 1.05)),
    ("deepseek", SamplingParams(0.6, 0.95, 40, 0.0, 1.0)),
    ("llama", SamplingParams(0.7, 0.9, 40, 0.05, 1.1)),
    ("mistral", SamplingParams(0.7, 0.9, 50, 0.0, 1.0)),
]
_DEFAULT_SAMPLING = SamplingParams(0.7, 0.9, 40, 0.0, 1.0)


class LocalModelAdapter(DefaultAdapter):
    """Chat-completions payloads tuned for small local models.

    Some local models emit tool calls as ``<tool_call>{json}</tool_call>``
    text instead of structured ``tool_calls``; :meth:`process_text_content`
    holds such spans back and returns them as extracted tool calls.
    """

    name = "local"

    def __init__(
        self,
        model_id: str,
        provider_name: str,
        supports_tools: bool = True,
        vision: bool = False,
        context_window: int = DEFAULT_LOCAL_CONTEXT_WINDOW,
    ) -> None:
        super().__init__(model_id)
        self.provider_name = provider_name
        self.supports_tools = supports_tools
        self._vision = vision
        self._context_window = context_window
        self._pending = ""

    def should_handle(self, model_id: str) -> bool:
        return False

    def sampling_params(self) -> SamplingParams:
        model = self.model_id.lower()
        for family, params in _SAMPLING:
            if family in model:
                return params
        return _DEFAULT_SAMPLING

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Any]:
        messages = super().convert_messages(request, message_filter)
        if messages and messages[0].role == "system" and isinstance(messages[0].content, str):
            messages[0] = messages[0].model_copy(
                update={"content": messages[0].content + LOCAL_SYSTEM_GUIDANCE}
            )
        return messages

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[Any]:
        if not self.supports_tools:
            logger.debug("local_tools_stripped", model=self.model_id)
            return []
        return super().convert_tools(request, summarize)

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> OpenAIChatPayload:
        payload = super().build_payload(request, messages, tools)
        sampling = self.sampling_params()
        return payload.model_copy(
            update={
                "temperature": sampling.temperature,
                "top_p": sampling.top_p,
                "top_k": sampling.top_k,
                "min_p": sampling.min_p,
                "repetition_penalty": sampling.repetition_penalty
                if sampling.repetition_penalty > 1
                else None,
                "max_tokens": max(request.max_tokens, MIN_LOCAL_MAX_TOKENS),
            }
        )

    def process_text_content(
        self, text_content: str, accumulated_text: str
    ) -> AdapterResult:
        if not self._pending and "<" not in text_content:
            return AdapterResult(cleaned_text=text_content)

        buffer = self._pending + text_content
        emitted: list[str] = []
        calls: list[ToolCall] = []
        while True:
            start = buffer.find(TOOL_CALL_OPEN)
            if start == -1:
                held = _open_tag_prefix_length(buffer)
                emitted.append(buffer[: len(buffer) - held])
                buffer = buffer[len(buffer) - held :]
                break
            emitted.append(buffer[:start])
            end = buffer.find(TOOL_CALL_CLOSE, start)
            if end == -1:
                buffer = buffer[start:]
                break
            body = buffer[start + len(TOOL_CALL_OPEN) : end]
            call = _parse_tool_call(body)
            if call is not None:
                calls.append(call)
            else:
                emitted.append(buffer[start : end + len(TOOL_CALL_CLOSE)])
            buffer = buffer[end + len(TOOL_CALL_CLOSE) :]

        self._pending = buffer
        cleaned = "".join(emitted)
        return AdapterResult(
            cleaned_text=cleaned,
            extracted_tool_calls=calls,
            was_transformed=bool(calls) or cleaned != text_content,
        )

    def flush(self) -> str:
        """Text held back at end of stream (an unterminated tool call)."""
        pending, self._pending = self._pending, ""
        return pending

    def reset(self) -> None:
        self._pending = ""

    def get_context_window(self) -> int:
        return self._context_window

    def set_context_window(self, context_window: int) -> None:
        self._context_window = context_window

    def supports_vision(self) -> bool:
        return self._vision


def _parse_tool_call(body: str) -> ToolCall | None:
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("local_tool_call_unparseable", body=body[:100])
        return None
    if not isinstance(data, dict) or not isinstance(data.get("name"), str):
        return None
    arguments = data.get("arguments") or data.get("parameters") or {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            arguments = {"input": arguments}
    return ToolCall(
        id=f"toolu_{uuid.uuid4().hex[:24]}",
        name=data["name"],
        arguments=arguments if isinstance(arguments, dict) else {"input": arguments},
    )


def _open_tag_prefix_length(text: str) -> int:
    """Length of the longest suffix of ``text`` that could start an open tag."""
    for size in range(min(len(text), len(TOOL_CALL_OPEN) - 1), 0, -1):
        if TOOL_CALL_OPEN.startswith(text[-size:]):
            return size
    return 0
