"""Canonical → OpenAI chat-completions conversion helpers.

Shared by every adapter whose provider speaks the chat-completions shape.
"""

import json
from typing import Any

import structlog

from claudish.models.payloads import (
    OpenAIChatMessage,
    OpenAIFunction,
    OpenAIFunctionCall,
    OpenAITool,
    OpenAIToolCall,
)
from claudish.models.requests import (
    ImageBlock,
    ImageSource,
    MessageRequest,
    TextBlock,
    ToolChoice,
    ToolResultBlock,
    ToolUseBlock,
)

from .base import MessageFilter, strip_schema_descriptions, summarize_description


logger = structlog.get_logger(__name__)


def image_url(source: ImageSource) -> str | None:
    """Data URL (or remote URL) for an image source."""
    if source.type == "url":
        return source.url
    if source.media_type and source.data:
        return f"data:{source.media_type};base64,{source.data}"
    return None


def _tool_result_content(block: ToolResultBlock) -> str:
    if isinstance(block.content, str):
        return block.content
    text = block.text_content()
    if text:
        return text
    return json.dumps([b.model_dump(mode="json") for b in block.content])


def convert_messages_to_openai(
    request: MessageRequest, message_filter: MessageFilter | None = None
) -> list[OpenAIChatMessage]:
    """Convert canonical messages to chat-completions messages.

    The system prompt becomes the first message. Assistant ``tool_use``
    blocks become ``tool_calls`` and user ``tool_result`` blocks become
    ``tool`` role messages, emitted before any remaining user content of
    the same turn.
    """
    messages: list[OpenAIChatMessage] = []

    system = request.system_text()
    if system:
        if message_filter is not None:
            system = message_filter(system)
        messages.append(OpenAIChatMessage(role="system", content=system))

    for message in request.messages:
        if isinstance(message.content, str):
            messages.append(OpenAIChatMessage(role=message.role, content=message.content))
            continue

        if message.role == "assistant":
            text_parts: list[str] = []
            tool_calls: list[OpenAIToolCall] = []
            for block in message.content:
                if isinstance(block, TextBlock):
                    text_parts.append(block.text)
                elif isinstance(block, ToolUseBlock):
                    tool_calls.append(
                        OpenAIToolCall(
                            id=block.id,
                            function=OpenAIFunctionCall(
                                name=block.name, arguments=json.dumps(block.input)
                            ),
                        )
                    )
            if text_parts:
                content: str | None = "".join(text_parts)
            else:
                # A turn of only thinking blocks still needs content
                content = None if tool_calls else ""
            messages.append(
                OpenAIChatMessage(
                    role="assistant",
                    content=content,
                    tool_calls=tool_calls or None,
                )
            )
            continue

        parts: list[dict[str, Any]] = []
        for block in message.content:
            if isinstance(block, ToolResultBlock):
                messages.append(
                    OpenAIChatMessage(
                        role="tool",
                        tool_call_id=block.tool_use_id,
                        content=_tool_result_content(block),
                    )
                )
            elif isinstance(block, TextBlock):
                parts.append({"type": "text", "text": block.text})
            elif isinstance(block, ImageBlock):
                url = image_url(block.source)
                if url:
                    parts.append({"type": "image_url", "image_url": {"url": url}})

        if not parts:
            continue
        if len(parts) == 1 and parts[0]["type"] == "text":
            messages.append(OpenAIChatMessage(role="user", content=parts[0]["text"]))
        else:
            messages.append(OpenAIChatMessage(role="user", content=parts))

    return messages


def convert_tools_to_openai(
    request: MessageRequest, summarize: bool = False
) -> list[OpenAITool]:
    """Canonical tool definitions as chat-completions function tools."""
    tools: list[OpenAITool] = []
    for tool in request.tools or []:
        description = tool.description
        parameters = tool.input_schema
        if summarize:
            description = summarize_description(description)
            parameters = strip_schema_descriptions(parameters)
        tools.append(
            OpenAITool(
                function=OpenAIFunction(
                    name=tool.name, description=description, parameters=parameters
                )
            )
        )
    if summarize and tools:
        logger.debug("tool_descriptions_summarized", count=len(tools))
    return tools


def convert_messages_to_responses(
    messages: list[OpenAIChatMessage],
) -> list[dict[str, Any]]:
    """Chat-completions messages as Responses API ``input`` items.

    System messages are dropped; the caller sends the system prompt as
    ``instructions``.
    """
    items: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "system":
            continue
        if message.role == "tool":
            output = message.content
            items.append(
                {
                    "type": "function_call_output",
                    "call_id": message.tool_call_id,
                    "output": output if isinstance(output, str) else json.dumps(output),
                }
            )
            continue

        text_type = "input_text" if message.role == "user" else "output_text"
        if isinstance(message.content, str):
            if message.content or not message.tool_calls:
                items.append(
                    {
                        "type": "message",
                        "role": message.role,
                        "content": [{"type": text_type, "text": message.content}],
                    }
                )
        elif message.content:
            content: list[dict[str, Any]] = []
            for part in message.content:
                if part.get("type") == "text":
                    content.append({"type": text_type, "text": part.get("text", "")})
                elif part.get("type") == "image_url":
                    url = (part.get("image_url") or {}).get("url")
                    content.append({"type": "input_image", "image_url": url})
            items.append({"type": "message", "role": message.role, "content": content})

        for call in message.tool_calls or []:
            items.append(
                {
                    "type": "function_call",
                    "call_id": call.id,
                    "name": call.function.name,
                    "arguments": call.function.arguments,
                    "status": "completed",
                }
            )
    return items


def convert_tools_to_responses(tools: list[OpenAITool]) -> list[dict[str, Any]]:
    """Function tools flattened to the Responses API shape."""
    converted: list[dict[str, Any]] = []
    for tool in tools:
        entry: dict[str, Any] = {"type": "function", "name": tool.function.name}
        if tool.function.description is not None:
            entry["description"] = tool.function.description
        entry["parameters"] = tool.function.parameters
        converted.append(entry)
    return converted


def map_tool_choice(tool_choice: ToolChoice | None) -> str | dict[str, Any] | None:
    """Canonical ``tool_choice`` as the chat-completions equivalent."""
    if tool_choice is None:
        return None
    if tool_choice.type == "tool":
        if not tool_choice.name:
            return None
        return {"type": "function", "function": {"name": tool_choice.name}}
    if tool_choice.type == "any":
        return "required"
    return tool_choice.type
