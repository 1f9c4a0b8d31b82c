"""Adapters for OpenAI chat-completions providers."""

import re
from typing import Any, Literal

import structlog

from claudish.models.payloads import (
    OpenAIChatPayload,
    OpenAIResponsesPayload,
    ProviderPayload,
)
from claudish.models.requests import MessageRequest

from .base import MessageFilter, ModelAdapter
from .openai_format import (
    convert_messages_to_openai,
    convert_messages_to_responses,
    convert_tools_to_openai,
    convert_tools_to_responses,
    map_tool_choice,
)


logger = structlog.get_logger(__name__)

ReasoningEffort = Literal["minimal", "low", "medium", "high"]

# Ordered: the first matching family wins.
_CONTEXT_WINDOWS: list[tuple[tuple[str, ...], int]] = [
    (("grok-4.1-fast", "grok-4-1-fast", "grok-4-fast"), 2_000_000),
    (("grok-code-fast", "grok-4"), 256_000),
    (("grok",), 131_072),
    (("kimi-k2",), 262_144),
    (("kimi",), 131_072),
    (("glm-5",), 204_800),
    (("glm-4.7-flash",), 200_000),
    (("glm-4.7",), 204_800),
    (("glm-4.6v",), 128_000),
    (("glm-4.6",), 204_800),
    (("glm-4.5v",), 64_000),
    (("glm-",), 131_072),
    (("gpt-5",), 256_000),
    (("o1", "o3"), 200_000),
    (("gpt-4o", "gpt-4-turbo"), 128_000),
    (("gpt-3.5",), 16_385),
]

_GLM_VISION = re.compile(r"\d+\.?\d*v")


def reasoning_effort_for_budget(budget_tokens: int) -> ReasoningEffort:
    """Map an extended-thinking token budget onto a reasoning effort level."""
    if budget_tokens < 4000:
        return "minimal"
    if budget_tokens < 16000:
        return "low"
    if budget_tokens >= 32000:
        return "high"
    return "medium"


class DefaultAdapter(ModelAdapter):
    """Plain chat-completions translation with no provider quirks."""

    name = "openai-compatible"

    def should_handle(self, model_id: str) -> bool:
        return False

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Any]:
        return convert_messages_to_openai(request, message_filter)

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[Any]:
        return convert_tools_to_openai(request, summarize)

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> OpenAIChatPayload:
        return OpenAIChatPayload(
            model=self.model_id,
            messages=messages,
            stream=True,
            temperature=request.temperature if request.temperature is not None else 1,
            max_tokens=request.max_tokens,
            stream_options={"include_usage": True},
            tools=tools or None,
            tool_choice=map_tool_choice(request.tool_choice) if tools else None,
            stop=request.stop_sequences,
        )

    def get_context_window(self) -> int:
        return 128_000


class OpenAIAdapter(DefaultAdapter):
    """OpenAI models, including the o-series and GPT-5 reasoning families."""

    name = "openai"

    def __init__(self, model_id: str, vision_override: bool | None = None) -> None:
        super().__init__(model_id)
        self._vision_override = vision_override

    def should_handle(self, model_id: str) -> bool:
        return model_id.startswith("oai/") or "o1" in model_id or "o3" in model_id

    def _model(self) -> str:
        return self.model_id.lower()

    def is_reasoning_model(self) -> bool:
        model = self._model()
        return "o1" in model or "o3" in model

    def uses_max_completion_tokens(self) -> bool:
        model = self._model()
        return any(family in model for family in ("gpt-5", "o1", "o3", "o4"))

    def is_codex_model(self) -> bool:
        return "codex" in self._model()

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> ProviderPayload:
        if self.is_codex_model():
            return self.build_responses_payload(request, messages, tools)

        payload = super().build_payload(request, messages, tools)
        updates: dict[str, Any] = {}

        if self.uses_max_completion_tokens():
            updates["max_tokens"] = None
            updates["max_completion_tokens"] = request.max_tokens

        if request.thinking is not None and self.is_reasoning_model():
            effort = reasoning_effort_for_budget(request.thinking.budget_tokens)
            updates["reasoning_effort"] = effort
            logger.debug(
                "reasoning_effort_mapped",
                budget_tokens=request.thinking.budget_tokens,
                reasoning_effort=effort,
            )

        return payload.model_copy(update=updates) if updates else payload

    def build_responses_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> OpenAIResponsesPayload:
        """Responses API body: ``input`` items, system prompt as ``instructions``."""
        instructions = next(
            (m.content for m in messages if m.role == "system" and m.content), None
        )
        return OpenAIResponsesPayload(
            model=self.model_id,
            input=convert_messages_to_responses(messages),
            instructions=instructions,
            max_output_tokens=max(16, request.max_tokens),
            tools=convert_tools_to_responses(tools) or None,
        )

    def get_context_window(self) -> int:
        model = self._model()
        for fragments, window in _CONTEXT_WINDOWS:
            if any(fragment in model for fragment in fragments):
                return window
        return 128_000

    def supports_vision(self) -> bool:
        if self._vision_override is False:
            return False
        model = self._model()
        if model.startswith("glm-") and not _GLM_VISION.search(model):
            return False
        return True
