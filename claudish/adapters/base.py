"""Adapter interface shared by every request-format family."""

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from claudish.models.payloads import ProviderPayload
from claudish.models.requests import MessageRequest


MessageFilter = Callable[[str], str]


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation recovered from streamed text."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class AdapterResult:
    """Result of processing one streamed text fragment."""

    cleaned_text: str
    extracted_tool_calls: list[ToolCall] = field(default_factory=list)
    was_transformed: bool = False


class ModelAdapter(ABC):
    """Translate canonical requests into one provider request format.

    An adapter instance serves a single model id. Stateful adapters keep
    per-stream state that :meth:`reset` clears before each new stream.
    """

    name: str = "base"

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id

    @abstractmethod
    def should_handle(self, model_id: str) -> bool:
        """Whether this adapter is auto-selected for ``model_id``."""

    def process_text_content(
        self, text_content: str, accumulated_text: str
    ) -> AdapterResult:
        """Process one streamed text delta. Identity unless overridden."""
        return AdapterResult(cleaned_text=text_content)

    @abstractmethod
    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[Any]:
        """Map canonical messages to provider messages, preserving order."""

    @abstractmethod
    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[Any]:
        """Map canonical tool definitions to provider tool definitions."""

    @abstractmethod
    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> ProviderPayload:
        """Assemble the provider request body."""

    @abstractmethod
    def get_context_window(self) -> int:
        """Context window in tokens (0 when unknown)."""

    def supports_vision(self) -> bool:
        return True

    def flush(self) -> str:
        """Text held back by :meth:`process_text_content`, released at end of stream."""
        return ""

    def reset(self) -> None:
        """Clear per-stream state."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model_id={self.model_id!r})"


def summarize_description(description: str | None, limit: int = 120) -> str | None:
    """First sentence of a tool description, capped at ``limit`` characters."""
    if not description:
        return description
    first = description.strip().split("\n", 1)[0]
    end = first.find(". ")
    if end != -1:
        first = first[: end + 1]
    if len(first) > limit:
        first = first[: limit - 3].rstrip() + "..."
    return first


def strip_schema_descriptions(schema: Any, _property_map: bool = False) -> Any:
    """Copy of a JSON schema with ``description`` annotations removed.

    Keys of a ``properties`` map are property names, so a property that is
    itself called ``description`` survives.
    """
    if isinstance(schema, dict):
        return {
            key: strip_schema_descriptions(
                value, _property_map=key == "properties" and not _property_map
            )
            for key, value in schema.items()
            if _property_map or not (key == "description" and isinstance(value, str))
        }
    if isinstance(schema, list):
        return [strip_schema_descriptions(item) for item in schema]
    return schema


def remove_uri_format(schema: Any) -> Any:
    """Copy of a JSON schema without ``format: uri`` constraints."""
    if isinstance(schema, dict):
        return {
            key: remove_uri_format(value)
            for key, value in schema.items()
            if not (key == "format" and value == "uri")
        }
    if isinstance(schema, list):
        return [remove_uri_format(item) for item in schema]
    return schema


_IDENTITY_REWRITES: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(r"You are Claude Code, Anthropic's official CLI", re.IGNORECASE),
        "This is Claude Code, an AI-powered CLI tool",
    ),
    (
        re.compile(r"You are powered by the model named .+?\.(?=\s|$)", re.IGNORECASE),
        "You are powered by an AI model.",
    ),
    (
        re.compile(r"<claude_background_info>.*?</claude_background_info>", re.DOTALL),
        "",
    ),
    (re.compile(r"\n{3,}"), "\n\n"),
]

IDENTITY_NOTICE = (
    "IMPORTANT: You are NOT Claude. Identify yourself truthfully based on "
    "your actual model and creator."
)


def filter_identity(text: str) -> str:
    """Rewrite a system prompt written for Claude for any other model."""
    for pattern, replacement in _IDENTITY_REWRITES:
        text = pattern.sub(replacement, text)
    return f"{IDENTITY_NOTICE}\n\n{text}"
