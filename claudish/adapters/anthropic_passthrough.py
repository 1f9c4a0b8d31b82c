"""Adapter for providers that natively speak the Anthropic Messages format."""

from typing import Any

from claudish.models.payloads import AnthropicPayload
from claudish.models.requests import Message, MessageRequest, ToolDefinition

from .base import AdapterResult, MessageFilter, ModelAdapter


_CONTEXT_WINDOWS = {
    "kimi": 128_000,
    "kimi-coding": 128_000,
    "minimax": 100_000,
    "minimax-coding": 100_000,
}
_DEFAULT_CONTEXT_WINDOW = 128_000


class AnthropicPassthroughAdapter(ModelAdapter):
    """Forwards canonical requests unchanged.

    Never auto-selected from a model id: it is bound explicitly to a
    native provider name, so a model id that merely looks like a native
    provider's model is not misrouted here.
    """

    name = "anthropic-passthrough"

    def __init__(self, model_id: str, provider_name: str) -> None:
        super().__init__(model_id)
        self.provider_name = provider_name

    def should_handle(self, model_id: str) -> bool:
        return False

    def process_text_content(
        self, text_content: str, accumulated_text: str
    ) -> AdapterResult:
        return AdapterResult(cleaned_text=text_content, was_transformed=False)

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Message]:
        return list(request.messages)

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[ToolDefinition]:
        return list(request.tools or [])

    def build_payload(
        self,
        request: MessageRequest,
        messages: list[Any],
        tools: list[Any],
    ) -> AnthropicPayload:
        system: str | list[dict[str, Any]] | None = None
        if isinstance(request.system, str):
            system = request.system
        elif request.system is not None:
            system = [block.model_dump(mode="json") for block in request.system]

        return AnthropicPayload(
            model=self.model_id,
            messages=messages,
            max_tokens=request.max_tokens,
            stream=True,
            system=system,
            tools=tools or None,
            thinking=_dump(request.thinking),
            tool_choice=_dump(request.tool_choice),
            temperature=request.temperature,
            stop_sequences=request.stop_sequences,
            metadata=request.metadata,
        )

    def get_context_window(self) -> int:
        return _CONTEXT_WINDOWS.get(self.provider_name, _DEFAULT_CONTEXT_WINDOW)

    def supports_vision(self) -> bool:
        return True


def _dump(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    return value.model_dump(mode="json", exclude_none=True)
