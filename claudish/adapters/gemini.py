"""Adapter for Google Gemini ``generateContent`` requests."""

import json
from collections import OrderedDict
import re
from typing import Any

import structlog

from claudish.config.constants import GEMINI_REASONING_SUPPRESSION
from claudish.models.payloads import (
    GeminiContent,
    GeminiFunctionCall,
    GeminiFunctionResponse,
    GeminiGenerationConfig,
    GeminiInlineData,
    GeminiPart,
    GeminiPayload,
    GeminiSystemInstruction,
    GeminiThinkingConfig,
    GeminiToolSet,
)
from claudish.models.requests import (
    ImageBlock,
    Message,
    MessageRequest,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

from .base import (
    AdapterResult,
    MessageFilter,
    ModelAdapter,
    strip_schema_descriptions,
    summarize_description,
)


logger = structlog.get_logger(__name__)

# Echoed when no signature was captured for a tool call (history replay,
# first request of a resumed session).
DUMMY_THOUGHT_SIGNATURE = "skip_thought_signature_validator"
MAX_THINKING_BUDGET = 24576
TOOL_CALL_CACHE_SIZE = 1024

_UNSUPPORTED_SCHEMA_KEYS = frozenset(
    {
        "$schema",
        "$id",
        "$ref",
        "additionalProperties",
        "exclusiveMinimum",
        "exclusiveMaximum",
        "propertyNames",
        "patternProperties",
        "examples",
    }
)

_REASONING_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^Wait,?\s+I(?:'m|\s+am)\s+\w+ing\b",
        r"^Wait,?\s+(?:if|that|the|this|I\s+(?:need|should|will|have|already))",
        r"^Wait[.!]?\s*$",
        r"^Let\s+me\s+(think|check|verify|see|look|analyze|consider|first|start)",
        r"^Let's\s+(check|see|look|start|first|try|think|verify|examine|analyze)",
        r"^I\s+need\s+to\s+",
        r"^O[kK](?:ay)?[.,!]?\s*(?:so|let|I|now|first)?",
        r"^[Hh]mm+",
        r"^So[,.]?\s+(?:I|let|first|now|the)",
        r"^(?:First|Next|Then|Now)[,.]?\s+(?:I|let|we)",
        r"^(?:Thinking\s+about|Considering)",
        r"^I(?:'ll|\s+will)\s+(?:first|now|start|begin|try|check|fix|look|examine"
        r"|modify|create|update|read|investigate|adjust|improve|integrate|mark|also"
        r"|verify|need|rethink|add|help|use|run|search|find|explore|analyze|review"
        r"|test|implement|write|make|set|get|see|open|close|save|load|fetch|call"
        r"|send|build|compile|execute|process|handle|parse|format|validate|clean"
        r"|clear|remove|delete|move|copy|rename|install|configure|setup|initialize"
        r"|prepare|work|continue|proceed|ensure|confirm)",
        r"^I\s+should\s+",
        r"^(?:Debug|Checking|Verifying|Looking\s+at):",
        r"^I\s+also\s+(?:notice|need|see|want)",
        r"^The\s+(?:goal|issue|problem|idea|plan)\s+is",
        r"^In\s+the\s+(?:old|current|previous|new|existing)\s+",
        r"^`[^`]+`\s+(?:is|has|does|needs|should|will|doesn't|hasn't)",
    )
]

_CONTINUATION_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^And\s+(?:then|I|now|so)",
        r"^And\s+I(?:'ll|\s+will)",
        r"^But\s+(?:I|first|wait|actually|the|if)",
        r"^Actually[,.]?\s+",
        r"^Also[,.]?\s+(?:I|the|check|note)",
        r"^\d+\.\s+(?:I|First|Check|Run|Create|Update|Read|Modify|Add|Fix|Look)",
        r"^-\s+(?:I|First|Check|Run|Create|Update|Read|Modify|Add|Fix)",
        r"^Or\s+(?:I|just|we|maybe|perhaps)",
        r"^Since\s+(?:I|the|this|we|it)",
        r"^Because\s+(?:I|the|this|we|it)",
        r"^If\s+(?:I|the|this|we|it)\s+",
        r"^This\s+(?:is|means|requires|should|will|confirms|suggests)",
        r"^That\s+(?:means|is|should|will|explains|confirms)",
        r"^Lines?\s+\d+",
        r"^The\s+`[^`]+`\s+(?:is|has|contains|needs|should)",
    )
]


def sanitize_gemini_schema(schema: Any, _property_map: bool = False) -> Any:
    """Drop JSON-schema keywords Gemini's function declarations reject."""
    if isinstance(schema, dict):
        if _property_map:
            return {key: sanitize_gemini_schema(value) for key, value in schema.items()}
        cleaned: dict[str, Any] = {}
        for key, value in schema.items():
            if key in _UNSUPPORTED_SCHEMA_KEYS:
                continue
            if key == "format" and value not in ("enum", "date-time"):
                continue
            cleaned[key] = sanitize_gemini_schema(
                value, _property_map=key == "properties"
            )
        return cleaned
    if isinstance(schema, list):
        return [sanitize_gemini_schema(item) for item in schema]
    return schema


class ToolCallCache(OrderedDict[str, tuple[str, str | None]]):
    """Tool id → (name, thought signature), bounded to ``maxsize`` entries.

    Registering an id again refreshes it; the least recently registered
    entry is evicted first.
    """

    def __init__(self, maxsize: int = TOOL_CALL_CACHE_SIZE) -> None:
        super().__init__()
        self.maxsize = maxsize

    def __setitem__(self, key: str, value: tuple[str, str | None]) -> None:
        super().__setitem__(key, value)
        self.move_to_end(key)
        while len(self) > self.maxsize:
            self.popitem(last=False)


class GeminiAdapter(ModelAdapter):
    """Gemini contents/parts translation.

    The tool-call map (tool id → name, thought signature) must outlive a
    single request: Gemini requires signatures from earlier responses to
    be echoed back on later turns, and tool results only carry the id, not
    the function name. Pass the same ``tool_calls`` dict to every adapter
    serving one conversation model.
    """

    name = "gemini"

    def __init__(
        self,
        model_id: str,
        tool_calls: dict[str, tuple[str, str | None]] | None = None,
    ) -> None:
        super().__init__(model_id)
        self._tool_calls = tool_calls if tool_calls is not None else ToolCallCache()
        self._system_filter: MessageFilter | None = None
        self._in_reasoning_block = False

    def should_handle(self, model_id: str) -> bool:
        return "gemini" in model_id or model_id.startswith("google/")

    # --- tool call registry ---

    def register_tool_call(
        self, tool_id: str, name: str, thought_signature: str | None = None
    ) -> None:
        self._tool_calls[tool_id] = (name, thought_signature)
        if thought_signature:
            logger.debug("thought_signature_captured", tool=name, tool_id=tool_id)

    def lookup_tool_call(self, tool_id: str) -> tuple[str, str | None] | None:
        return self._tool_calls.get(tool_id)

    # --- conversion ---

    def convert_messages(
        self, request: MessageRequest, message_filter: MessageFilter | None = None
    ) -> list[GeminiContent]:
        # The system prompt goes out as systemInstruction in build_payload
        self._system_filter = message_filter
        contents: list[GeminiContent] = []
        for message in request.messages:
            if message.role == "user":
                parts = self._user_parts(message)
                if parts:
                    contents.append(GeminiContent(role="user", parts=parts))
            else:
                parts = self._model_parts(message)
                if parts:
                    contents.append(GeminiContent(role="model", parts=parts))
        return contents

    def _user_parts(self, message: Message) -> list[GeminiPart]:
        parts: list[GeminiPart] = []
        for block in message.blocks():
            if isinstance(block, TextBlock):
                parts.append(GeminiPart(text=block.text))
            elif isinstance(block, ImageBlock):
                source = block.source
                if source.media_type and source.data:
                    parts.append(
                        GeminiPart(
                            inline_data=GeminiInlineData(
                                mime_type=source.media_type, data=source.data
                            )
                        )
                    )
            elif isinstance(block, ToolResultBlock):
                known = self._tool_calls.get(block.tool_use_id)
                if known is None:
                    logger.warning(
                        "gemini_tool_result_unmatched", tool_use_id=block.tool_use_id
                    )
                    continue
                content = (
                    block.content
                    if isinstance(block.content, str)
                    else json.dumps(
                        [b.model_dump(mode="json") for b in block.content]
                    )
                )
                parts.append(
                    GeminiPart(
                        function_response=GeminiFunctionResponse(
                            name=known[0], response={"content": content}
                        )
                    )
                )
        return parts

    def _model_parts(self, message: Message) -> list[GeminiPart]:
        parts: list[GeminiPart] = []
        for block in message.blocks():
            if isinstance(block, TextBlock):
                parts.append(GeminiPart(text=block.text))
            elif isinstance(block, ToolUseBlock):
                known = self._tool_calls.get(block.id)
                signature = known[1] if known else None
                if not signature:
                    signature = DUMMY_THOUGHT_SIGNATURE
                    logger.debug(
                        "thought_signature_placeholder", tool=block.name, tool_id=block.id
                    )
                if known is None:
                    self._tool_calls[block.id] = (block.name, signature)
                parts.append(
                    GeminiPart(
                        function_call=GeminiFunctionCall(
                            name=block.name, args=dict(block.input)
                        ),
                        thought_signature=signature,
                    )
                )
        return parts

    def convert_tools(
        self, request: MessageRequest, summarize: bool = False
    ) -> list[GeminiToolSet]:
        if not request.tools:
            return []
        declarations = []
        for tool in request.tools:
            description = tool.description or ""
            parameters = tool.input_schema
            if summarize:
                description = summarize_description(description) or ""
                parameters = strip_schema_descriptions(parameters)
            declarations.append(
                {
                    "name": tool.name,
                    "description": description,
                    "parameters": sanitize_gemini_schema(parameters),
                }
            )
        return [GeminiToolSet(function_declarations=declarations)]

    def build_payload(
        self, request: MessageRequest, messages: list[Any], tools: list[Any]
    ) -> GeminiPayload:
        generation_config = GeminiGenerationConfig(
            temperature=request.temperature if request.temperature is not None else 1,
            max_output_tokens=request.max_tokens,
            stop_sequences=request.stop_sequences,
            thinking_config=self._thinking_config(request),
        )

        system_instruction = None
        system = request.system_text()
        if system:
            if self._system_filter is not None:
                system = self._system_filter(system)
            system_instruction = GeminiSystemInstruction(
                parts=[GeminiPart(text=f"{system}\n\n{GEMINI_REASONING_SUPPRESSION}")]
            )

        return GeminiPayload(
            contents=messages,
            generation_config=generation_config,
            system_instruction=system_instruction,
            tools=tools or None,
        )

    def _thinking_config(self, request: MessageRequest) -> GeminiThinkingConfig | None:
        if request.thinking is None or request.thinking.type != "enabled":
            return None
        budget = request.thinking.budget_tokens
        if "gemini-3" in self.model_id:
            return GeminiThinkingConfig(thinking_level="high" if budget >= 16000 else "low")
        return GeminiThinkingConfig(thinking_budget=min(budget, MAX_THINKING_BUDGET))

    # --- streaming ---

    def process_text_content(
        self, text_content: str, accumulated_text: str
    ) -> AdapterResult:
        """Drop lines of leaked reasoning ("Wait, I'm...", "Let me check...")."""
        if not text_content or not text_content.strip():
            return AdapterResult(cleaned_text=text_content)

        kept: list[str] = []
        filtered = False
        for line in text_content.split("\n"):
            stripped = line.strip()
            if not stripped:
                kept.append(line)
                continue
            if any(p.search(stripped) for p in _REASONING_PATTERNS):
                filtered = True
                self._in_reasoning_block = True
                logger.debug("gemini_reasoning_filtered", line=stripped[:50])
                continue
            is_continuation = any(p.search(stripped) for p in _CONTINUATION_PATTERNS)
            if self._in_reasoning_block and is_continuation:
                filtered = True
                continue
            if self._in_reasoning_block and len(stripped) > 20:
                self._in_reasoning_block = False
            kept.append(line)

        if not filtered:
            return AdapterResult(cleaned_text=text_content)
        return AdapterResult(cleaned_text="\n".join(kept), was_transformed=True)

    def reset(self) -> None:
        self._in_reasoning_block = False

    def get_context_window(self) -> int:
        return 1_000_000

    def supports_vision(self) -> bool:
        return True
