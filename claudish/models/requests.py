"""Canonical (Anthropic Messages) request models.

Requests are frozen once validated: adapters read them and build new
provider payloads, they never edit the caller's copy.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from claudish.config.constants import DEFAULT_MAX_TOKENS


class _Block(BaseModel):
    # Unknown block fields (cache_control, citations, ...) are kept so that
    # passthrough providers receive them untouched.
    model_config = ConfigDict(frozen=True, extra="allow")


class ImageSource(_Block):
    """Image source data."""

    type: Literal["base64", "url"] = "base64"
    media_type: str | None = None
    data: str | None = None
    url: str | None = None


class TextBlock(_Block):
    type: Literal["text"] = "text"
    text: str


class ImageBlock(_Block):
    type: Literal["image"] = "image"
    source: ImageSource


class ToolUseBlock(_Block):
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(_Block):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str | list[TextBlock | ImageBlock] = ""
    is_error: bool | None = None

    def text_content(self) -> str:
        """Flatten the result to plain text."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )


class ThinkingBlock(_Block):
    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: str | None = None


ContentBlock = Annotated[
    TextBlock | ImageBlock | ToolUseBlock | ToolResultBlock | ThinkingBlock,
    Field(discriminator="type"),
]


class Message(_Block):
    """Individual message in the conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    def blocks(self) -> list[Any]:
        """Content as a block list, wrapping plain strings in a text block."""
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)


class SystemBlock(_Block):
    type: Literal["text"] = "text"
    text: str


class ToolDefinition(_Block):
    """Tool definition in canonical form."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ThinkingConfig(_Block):
    type: Literal["enabled", "disabled"] = "enabled"
    budget_tokens: int = 0


class ToolChoice(_Block):
    type: Literal["auto", "any", "tool", "none"]
    name: str | None = None
    disable_parallel_tool_use: bool | None = None


class MessageRequest(BaseModel):
    """Canonical request accepted by ``POST /v1/messages``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    model: str
    messages: list[Message]
    max_tokens: int = DEFAULT_MAX_TOKENS
    system: str | list[SystemBlock] | None = None
    tools: list[ToolDefinition] | None = None
    temperature: float | None = None
    stop_sequences: list[str] | None = None
    thinking: ThinkingConfig | None = None
    tool_choice: ToolChoice | None = None
    metadata: dict[str, Any] | None = None
    stream: bool = True

    def system_text(self, separator: str = "\n\n") -> str | None:
        """System prompt joined into a single string, or None when absent."""
        if self.system is None:
            return None
        if isinstance(self.system, str):
            return self.system
        return separator.join(block.text for block in self.system)

    def has_images(self) -> bool:
        for message in self.messages:
            if isinstance(message.content, str):
                continue
            for block in message.content:
                if isinstance(block, ImageBlock):
                    return True
                if isinstance(block, ToolResultBlock) and not isinstance(
                    block.content, str
                ):
                    if any(isinstance(b, ImageBlock) for b in block.content):
                        return True
        return False
