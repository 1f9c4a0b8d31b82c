from .payloads import (
    AnthropicPayload,
    CodeAssistEnvelope,
    GeminiPayload,
    OllamaPayload,
    OpenAIChatPayload,
    OpenAIResponsesPayload,
    ProviderPayload,
)
from .requests import (
    ContentBlock,
    ImageBlock,
    Message,
    MessageRequest,
    TextBlock,
    ThinkingBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)


__all__ = [
    "AnthropicPayload",
    "CodeAssistEnvelope",
    "ContentBlock",
    "GeminiPayload",
    "ImageBlock",
    "Message",
    "MessageRequest",
    "OllamaPayload",
    "OpenAIChatPayload",
    "OpenAIResponsesPayload",
    "ProviderPayload",
    "TextBlock",
    "ThinkingBlock",
    "ToolDefinition",
    "ToolResultBlock",
    "ToolUseBlock",
]
