"""Adapter for Ollama Cloud's native chat API (plain-string messages)."""

import json
from typing import Any

from claudish.models.payloads import OllamaMessage, OllamaPayload
from claudish.models.requests import (
    Message,
    MessageRequest,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

from .base import MessageFilter, ModelAdapter


class OllamaCloudAdapter(ModelAdapter):
    """Flattens every message to text.

    Tool calls and results are inlined as ``[Tool Call: name]`` /
    ``[Tool Result]`` markers; images are dropped and no tool schemas
    are sent.
    """

    name = "ollamacloud"

    def should_handle(self, model_id: str) -> bool:
        return False

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[OllamaMessage]:
        messages: list[OllamaMessage] = []
        system = request.system_text()
        if system:
            if message_filter is not None:
                system = message_filter(system)
            messages.append(OllamaMessage(role="system", content=system))
        for message in request.messages:
            if message.role == "user":
                messages.append(OllamaMessage(role="user", content=_user_text(message)))
            else:
                messages.append(
                    OllamaMessage(role="assistant", content=_assistant_text(message))
                )
        return messages

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[Any]:
        return []

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> OllamaPayload:
        return OllamaPayload(model=self.model_id, messages=messages, stream=True)

    def get_context_window(self) -> int:
        return 0

    def supports_vision(self) -> bool:
        return False


def _user_text(message: Message) -> str:
    if isinstance(message.content, str):
        return message.content
    parts: list[str] = []
    for block in message.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolResultBlock):
            content = (
                block.content
                if isinstance(block.content, str)
                else json.dumps([b.model_dump(mode="json") for b in block.content])
            )
            parts.append(f"[Tool Result]: {content}")
    return "\n\n".join(parts)


def _assistant_text(message: Message) -> str:
    if isinstance(message.content, str):
        return message.content
    parts: list[str] = []
    for block in message.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            parts.append(f"[Tool Call: {block.name}]: {json.dumps(block.input)}")
    return "\n".join(parts)
